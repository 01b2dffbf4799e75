"""eArki 笑話與諷刺文章（「載入更多」單頁）。

來源：earki.co：孟加拉文幽默網站。
擷取方式：分類頁只有一個網址，需反覆點擊 button.ajax_load_btn 載入更多卡片；
按鈕文字變為「আর নেই」（沒有更多）即代表到底。
標籤固定為 0（非新聞內容）。
"""

import re

from bs4 import BeautifulSoup

from .base import Extraction, Site
from ..models import CardSummary

BASE_URL = "https://www.earki.co"
NO_MORE_TEXT = "আর নেই"

# 標題、時間、內文的候選選擇器（依序嘗試）
_TITLE_SELECTORS = (
    "h1.title .title",
    "h2.title .title",
    "h1 .title",
    "h2 .title",
    "meta[property='og:title']",
)
_TIME_SELECTORS = (
    "span.time",
    "time[datetime]",
    "meta[property='article:published_time']",
)
_BODY_SELECTORS = (
    'div[itemprop="articleBody"]',
    'article [itemprop="articleBody"]',
    "article .content",
    ".article_body",
    ".content",
)


class EarkiSite(Site):
    """eArki 共用邏輯，子類別設定分類網址與卡片選擇器。"""
    publisher = "earki"
    label = 0
    mode = "incremental"
    end_page = None
    concurrency = 1

    load_more_selector = "button.ajax_load_btn"
    card_selector: str = ""

    def parse_cards(self, soup: BeautifulSoup, base_url: str) -> list[CardSummary]:
        cards: list[CardSummary] = []
        for a in soup.select(self.card_selector):
            url = self.absolute_url(a.get("href"), BASE_URL)
            if url:
                cards.append(CardSummary(url=url, category=self.category))
        return cards

    def is_exhausted(self, soup: BeautifulSoup) -> bool:
        btn = soup.select_one(".ajax_load_btn")
        return btn is not None and NO_MORE_TEXT in btn.get_text()

    def extract(self, soup: BeautifulSoup, url: str) -> Extraction:
        title_el = self._first(soup, _TITLE_SELECTORS)
        time_el = self._first(soup, _TIME_SELECTORS)
        body_el = self._first(soup, _BODY_SELECTORS)

        published = None
        if time_el is not None:
            published = (
                time_el.get("data-published")
                or time_el.get("datetime")
                or time_el.get("content")
                or None
            )

        return Extraction(
            headline=self.text_of(title_el),
            published_at_raw=published,
            content=self.clean_body(body_el),
        )

    @staticmethod
    def _first(soup: BeautifulSoup, selectors: tuple[str, ...]):
        for selector in selectors:
            el = soup.select_one(selector)
            if el is not None:
                return el
        return None


class EarkiJokesSite(EarkiSite):
    key = "earki-jokes"
    category = "jokes"
    start_url = f"{BASE_URL}/jokes"
    card_selector = '.single_stream_content .each a[href^="/jokes/joke"]'
    list_ready_selector = ".single_stream_content .each"
    list_ready_timeout = 15.0
    id_patterns = (re.compile(r"/jokes/joke/(\d+)(?:/|$)"),)


class EarkiSatireSite(EarkiSite):
    key = "earki-satire"
    category = "article"
    start_url = f"{BASE_URL}/satire"
    card_selector = '.content_group_inner .each.has_image a[href^="/satire/article"]'
    id_patterns = (re.compile(r"/satire/article/(\d+)(?:/|$)"),)
