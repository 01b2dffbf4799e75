"""網站基礎模組：定義 Extraction 資料模型與 Site 抽象類別。

每個網站必須繼承 Site，實作列表頁卡片解析 parse_cards() 與文章頁欄位擷取
extract()。網站只負責選擇器邏輯，分頁、並行與寫入皆由 traversal 處理。
"""

import copy
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from ..config import ACCEPT_LANGUAGE
from ..identity import DEFAULT_ID_PATTERNS, publisher_from_url
from ..models import CardSummary

_BLOCK_TAGS = ["p", "div", "li", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "tr"]

# 區塊邊界標記（Unicode 私用區字元，不會出現在正文）
_BLOCK_MARK = "\ue000"


@dataclass
class Extraction:
    """文章頁擷取結果。

    exists=False 表示頁面缺少預期的內容標記，該篇應略過。
    label 為 None 時使用網站預設標籤。
    """
    exists: bool = True
    headline: str | None = None
    published_at_raw: str | None = None
    content: str | None = None
    category_raw: str | None = None
    label: int | None = None


class Site(ABC):
    """網站抽象基礎類別。

    子類別需設定 key / publisher / category / label / mode，
    分頁網址模式實作 list_url()，「載入更多」模式設定 start_url、
    load_more_selector 並實作 is_exhausted()。
    """
    key: str = "base"
    publisher: str | None = None
    category: str | None = None
    label: int = 0
    mode: Literal["offset", "incremental"] = "offset"

    # 預設執行參數（可被 CLI / 環境變數覆寫）
    start_page: int = 1
    end_page: int | None = 500
    concurrency: int | None = None

    id_patterns: tuple[re.Pattern[str], ...] = DEFAULT_ID_PATTERNS

    start_url: str = ""
    load_more_selector: str = ""

    # 讀取 DOM 前等待出現的元素（空字串表示不等待），逾時單位為秒
    list_ready_selector: str = ""
    list_ready_timeout: float = 0.0
    article_ready_selector: str = ""
    article_ready_timeout: float = 0.0

    @property
    def headers(self) -> dict[str, str]:
        return {"Accept-Language": ACCEPT_LANGUAGE}

    def list_url(self, page: int) -> str:
        """第 page 頁列表網址（僅分頁網址模式）。"""
        raise NotImplementedError(f"{self.key} 不支援分頁網址")

    def is_exhausted(self, soup: BeautifulSoup) -> bool:
        """頁面是否已顯示「沒有更多內容」的結束標記。"""
        return False

    def publisher_for(self, url: str) -> str | None:
        return self.publisher or publisher_from_url(url)

    @abstractmethod
    def parse_cards(self, soup: BeautifulSoup, base_url: str) -> list[CardSummary]:
        """解析列表頁卡片，回傳絕對網址的 CardSummary。"""
        ...

    @abstractmethod
    def extract(self, soup: BeautifulSoup, url: str) -> Extraction:
        """擷取文章頁欄位。"""
        ...

    # ── 共用工具 ──

    @staticmethod
    def absolute_url(href: str | None, base_url: str) -> str | None:
        """將相對連結轉為絕對網址；非 http(s) 連結回傳 None。"""
        if not href:
            return None
        href = href.strip()
        try:
            url = urljoin(base_url, href)
            scheme = urlsplit(url).scheme
        except ValueError:
            return None
        if scheme not in ("http", "https"):
            return None
        return url.split("#", 1)[0]

    @staticmethod
    def text_of(el: Tag | None) -> str | None:
        """元素的純文字（去除前後空白），空字串回傳 None。"""
        if el is None:
            return None
        if el.name == "meta":
            text = el.get("content") or ""
        else:
            text = el.get_text()
        text = text.strip()
        return text or None

    @staticmethod
    def clean_body(el: Tag | None, paragraph_sep: str = "\n") -> str | None:
        """將內文元素轉為段落文字，近似瀏覽器的 innerText。

        區塊元素之間視為段落分隔，以 paragraph_sep 連接；段落內的 <br>
        保留為單一換行。每行去除前後空白並丟棄空行。
        結果為空時回傳 None（內文無法擷取）。
        """
        if el is None:
            return None
        el = copy.copy(el)
        for br in el.find_all("br"):
            br.replace_with("\n")
        for block in el.find_all(_BLOCK_TAGS):
            block.insert(0, _BLOCK_MARK)
            block.append(_BLOCK_MARK)

        paragraphs = []
        for chunk in el.get_text().split(_BLOCK_MARK):
            lines = (line.strip() for line in chunk.splitlines())
            paragraph = "\n".join(line for line in lines if line)
            if paragraph:
                paragraphs.append(paragraph)
        return paragraph_sep.join(paragraphs) or None
