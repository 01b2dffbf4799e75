"""設定模組：從 .env 載入環境變數，定義全域常數。"""

import os
from pathlib import Path

from dotenv import load_dotenv

# 載入 .env 檔案中的環境變數
load_dotenv()


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


# ── 檔案路徑 ──
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent  # 專案根目錄
DATA_DIR = Path(os.environ.get("HARVEST_DATA_DIR", PROJECT_ROOT / "data"))  # 輸出目錄

# ── 瀏覽器 / HTTP 設定 ──
USER_AGENT = os.environ.get(
    "HARVEST_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
)
ACCEPT_LANGUAGE = os.environ.get("HARVEST_ACCEPT_LANGUAGE", "bn,en;q=0.9")
HEADLESS = os.environ.get("HARVEST_HEADLESS", "true").lower() in ("1", "true", "yes")
NAV_TIMEOUT = _env_float("HARVEST_NAV_TIMEOUT", 45.0)        # 頁面導覽逾時秒數

# ── 擷取節奏 ──
CONCURRENCY = _env_int("HARVEST_CONCURRENCY", 12)            # 每批次同時進行的文章請求上限
DELAY_BASE = _env_float("HARVEST_DELAY_BASE", 0.6)           # 禮貌延遲基準秒數
DELAY_JITTER = _env_float("HARVEST_DELAY_JITTER", 0.4)       # 隨機抖動上限秒數

# ── 「載入更多」模式 ──
SETTLE_INTERVAL = _env_float("HARVEST_SETTLE_INTERVAL", 5.0)     # 點擊後等待新內容的秒數
SENTINEL_TIMEOUT = _env_float("HARVEST_SENTINEL_TIMEOUT", 8.0)   # 等待結束標記的上限秒數
POLL_INTERVAL = _env_float("HARVEST_POLL_INTERVAL", 1.5)         # 按鈕暫不可點時的重試間隔
MAX_ROUNDS = _env_int("HARVEST_MAX_ROUNDS", 100000)              # 迴圈安全上限
