"""文章擷取 worker：渲染文章頁、交給網站擷取欄位、組成 ArticleRecord。

fetch_article() 會拋出 NavigationFailure / ContentMarkerAbsent；
run_worker() 是單篇錯誤的邊界，所有例外都在此轉為 FetchOutcome，
不會影響同批次的其他 worker。
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from .errors import ContentMarkerAbsent, NavigationFailure
from .identity import resolve
from .models import ArticleRecord, CardSummary, CrawlRun
from .render import Renderer
from .sites.base import Site

logger = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    """單篇擷取結果：成功時 record 有值，失敗或略過時 error 有值。"""
    card: CardSummary
    record: ArticleRecord | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None

    @property
    def skipped(self) -> bool:
        return isinstance(self.error, ContentMarkerAbsent)


def normalize_datetime(raw: str | None) -> str | None:
    """將日期字串正規化為 ISO-8601 UTC（如 2023-08-22T14:38:19.000Z）。

    支援 ISO-8601 與 Unix 時間戳（秒或毫秒）；無法解析時原樣回傳，
    空值回傳 None。無時區的時間視為 UTC。
    """
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None

    try:
        if re.fullmatch(r"[0-9]{9,13}", text):
            ts = int(text)
            if ts > 10**11:
                ts /= 1000
            dt = datetime.fromtimestamp(ts, tz=timezone.utc)
        else:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            dt = dt.astimezone(timezone.utc)
    except (ValueError, OverflowError, OSError):
        # 超出 datetime 範圍（如 0001-01-01 帶正時區）同樣保留原字串
        return text

    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


async def fetch_article(
    renderer: Renderer,
    site: Site,
    card: CardSummary,
    run: CrawlRun,
) -> ArticleRecord:
    """擷取單篇文章。欄位以文章頁為準，缺漏時以列表卡片補上。"""
    page = await renderer.open(card.url, site.headers, run.nav_timeout)
    try:
        if page.status >= 400:
            raise NavigationFailure(card.url, f"HTTP {page.status}", status=page.status)
        if site.article_ready_selector:
            ready = await page.wait_for_selector(
                site.article_ready_selector, site.article_ready_timeout
            )
            if not ready:
                logger.debug(f"等待 {site.article_ready_selector} 逾時：{card.url}")
        soup = await page.snapshot()
    finally:
        await page.close()

    data = site.extract(soup, card.url)
    if not data.exists:
        raise ContentMarkerAbsent(card.url)

    return ArticleRecord(
        article_id=resolve(card.url, site.id_patterns),
        publisher=site.publisher_for(card.url),
        source=card.url,
        category=data.category_raw or card.category or site.category,
        published_at=normalize_datetime(data.published_at_raw or card.published_at),
        headline=data.headline or card.headline,
        content=data.content,
        label=data.label if data.label is not None else site.label,
    )


async def run_worker(
    renderer: Renderer,
    site: Site,
    card: CardSummary,
    run: CrawlRun,
) -> FetchOutcome:
    """執行 fetch_article()，將所有單篇錯誤轉為 FetchOutcome。"""
    try:
        record = await fetch_article(renderer, site, card, run)
    except ContentMarkerAbsent as e:
        logger.debug(f"略過（缺少內容標記）：{card.url}")
        return FetchOutcome(card, error=e)
    except NavigationFailure as e:
        logger.warning(f"文章載入失敗 {card.url}：{e.reason}")
        return FetchOutcome(card, error=e)
    except Exception as e:
        # 擷取器或渲染器的非預期錯誤同樣只影響這一篇
        logger.warning(f"文章擷取失敗 {card.url}：{e!r}")
        return FetchOutcome(card, error=e)

    if record.content is None:
        logger.info(f"內文為空，仍會寫入：{card.url}")
    return FetchOutcome(card, record=record)
