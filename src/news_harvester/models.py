"""資料模型：單次執行設定、列表卡片、列表頁與輸出紀錄。"""

from dataclasses import asdict, dataclass, field
from pathlib import Path

# 表格輸出的固定欄位順序
CSV_COLUMNS = (
    "article_id",
    "publisher",
    "source",
    "category",
    "published_at",
    "headline",
    "content",
    "label",
)


@dataclass(frozen=True)
class CrawlRun:
    """單次執行的設定快照，執行期間不可變。

    時間單位皆為秒。end_page 為 None 表示不設上限（「載入更多」模式）。
    """
    output_dir: Path
    start_page: int = 1
    end_page: int | None = None
    concurrency: int = 12
    delay_base: float = 0.6
    delay_jitter: float = 0.4
    nav_timeout: float = 45.0
    max_rounds: int = 100000
    settle_interval: float = 5.0
    sentinel_timeout: float = 8.0
    poll_interval: float = 1.5
    max_articles: int | None = None
    dedupe_across_pages: bool = False

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError(f"concurrency 必須 >= 1：{self.concurrency}")
        if self.end_page is not None and self.end_page < self.start_page:
            raise ValueError(f"end_page ({self.end_page}) 小於 start_page ({self.start_page})")


@dataclass(frozen=True)
class CardSummary:
    """列表頁上的一張卡片。url 必須是絕對網址。"""
    url: str
    headline: str | None = None
    category: str | None = None
    published_at: str | None = None


@dataclass
class ListPage:
    """一次列表擷取結果：頁碼（或回合數）與其卡片。"""
    index: int
    cards: list[CardSummary] = field(default_factory=list)
    exhausted: bool = False


@dataclass
class ArticleRecord:
    """輸出紀錄。content 為 None 代表內文無法擷取，與空字串不同。"""
    article_id: str
    publisher: str | None
    source: str
    category: str | None
    published_at: str | None
    headline: str | None
    content: str | None
    label: int

    def as_dict(self) -> dict:
        return asdict(self)
