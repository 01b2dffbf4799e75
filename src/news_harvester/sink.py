"""輸出模組：以純追加方式同時寫入 JSONL 與 CSV。

每筆紀錄寫兩次：JSONL 保留完整內容（含換行），CSV 則將標題與內文中的換行
收合為空白。兩次寫入並非原子操作；若第二次寫入失敗，JSONL 會比 CSV 多一筆，
此時立即拋出 SinkWriteFailure 中止執行，不會默默遺失資料。
"""

import csv
import json
import logging
import re
from pathlib import Path

from .errors import SinkWriteFailure
from .models import CSV_COLUMNS, ArticleRecord

logger = logging.getLogger(__name__)

# Excel 需要 BOM 才能正確顯示孟加拉文等 UTF-8 文字
BOM = "\ufeff"

# 僅這兩個自由文字欄位會收合換行
_COLLAPSE_FIELDS = ("headline", "content")


def _collapse_newlines(text: str) -> str:
    return re.sub(r"\r?\n|\r", " ", text).strip()


def csv_row(record: ArticleRecord) -> list[str]:
    """將紀錄轉為 CSV 欄位列表；None 轉為空字串。"""
    data = record.as_dict()
    row: list[str] = []
    for column in CSV_COLUMNS:
        value = data[column]
        if value is None:
            row.append("")
            continue
        value = str(value)
        if column in _COLLAPSE_FIELDS:
            value = _collapse_newlines(value)
        row.append(value)
    return row


class RecordSink:
    """追加式雙格式寫入器，作為 context manager 使用。

    開啟時確保兩個檔案都存在、CSV 已有標頭列；之後只追加，
    從不 seek、截斷或回讀既有內容。
    """

    def __init__(self, jsonl_path: Path, csv_path: Path, bom: bool = True):
        self.jsonl_path = Path(jsonl_path)
        self.csv_path = Path(csv_path)
        self.bom = bom
        self.written = 0
        self._jsonl = None
        self._csv = None
        self._writer = None

    @classmethod
    def open_pair(cls, output_dir: Path, stem: str, bom: bool = True) -> "RecordSink":
        """以共用檔名主幹建立 <stem>.jsonl 與 <stem>.csv。"""
        output_dir = Path(output_dir)
        return cls(output_dir / f"{stem}.jsonl", output_dir / f"{stem}.csv", bom=bom)

    def __enter__(self) -> "RecordSink":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        try:
            self.jsonl_path.parent.mkdir(parents=True, exist_ok=True)
            self.csv_path.parent.mkdir(parents=True, exist_ok=True)

            # 僅在檔案不存在或為空時寫入標頭
            if not self.csv_path.exists() or self.csv_path.stat().st_size == 0:
                header = ",".join(CSV_COLUMNS) + "\n"
                with self.csv_path.open("w", encoding="utf-8", newline="") as f:
                    f.write((BOM if self.bom else "") + header)
                logger.info(f"建立 CSV：{self.csv_path}")
            self.jsonl_path.touch(exist_ok=True)

            self._jsonl = self.jsonl_path.open("a", encoding="utf-8", newline="")
            self._csv = self.csv_path.open("a", encoding="utf-8", newline="")
        except OSError as e:
            self.close()
            raise SinkWriteFailure(self.csv_path.parent, str(e)) from e

        self._writer = csv.writer(self._csv, lineterminator="\n")

    def append(self, record: ArticleRecord) -> None:
        """追加一筆紀錄至兩個檔案並立即 flush。"""
        if self._jsonl is None or self._csv is None:
            raise SinkWriteFailure(self.jsonl_path, "寫入器尚未開啟")

        try:
            self._jsonl.write(json.dumps(record.as_dict(), ensure_ascii=False) + "\n")
            self._jsonl.flush()
        except (OSError, ValueError) as e:
            raise SinkWriteFailure(self.jsonl_path, str(e)) from e

        try:
            self._writer.writerow(csv_row(record))
            self._csv.flush()
        except (OSError, ValueError) as e:
            # JSONL 已寫入但 CSV 失敗：兩檔此後不一致
            raise SinkWriteFailure(self.csv_path, f"{e}（JSONL 已寫入 {record.source}）") from e

        self.written += 1

    def close(self) -> None:
        for handle in (self._jsonl, self._csv):
            if handle is not None:
                handle.close()
        self._jsonl = None
        self._csv = None
        self._writer = None
