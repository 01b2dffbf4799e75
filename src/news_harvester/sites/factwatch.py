"""FactWatch 事實查核（分頁網址）。

來源：fact-watch.org：「ফ্যাক্টচেক」分類。
擷取方式：列表頁每頁約 12 張卡片，以 12 個並行分頁擷取文章。
文章頁必須包含 .factcheck-schema 區塊，否則略過；區塊文字含 "false"
時標籤為 0（不實），否則為 1。內文排除 schema 區塊。
"""

import copy

from bs4 import BeautifulSoup

from .base import Extraction, Site
from ..models import CardSummary

CATEGORY_BASE = (
    "https://www.fact-watch.org/category/"
    "%E0%A6%AB%E0%A7%8D%E0%A6%AF%E0%A6%BE%E0%A6%95%E0%A7%8D%E0%A6%9F%E0%A6%9A%E0%A7%87%E0%A6%95"
)


class FactWatchSite(Site):
    key = "factwatch"
    publisher = "fact-watch"
    category = "fact-check"
    label = 1
    mode = "offset"
    end_page = 70
    concurrency = 12

    list_ready_selector = ".category-more-blogs .more-wrapper"
    list_ready_timeout = 20.0

    # 以網址 slug 作為 ID
    id_patterns = ()

    def list_url(self, page: int) -> str:
        if page == 1:
            return CATEGORY_BASE + "/"
        return f"{CATEGORY_BASE}/page/{page}/"

    def parse_cards(self, soup: BeautifulSoup, base_url: str) -> list[CardSummary]:
        cards: list[CardSummary] = []
        for a in soup.select(".category-more-blogs .more-wrapper .card h3.title a[href]"):
            url = self.absolute_url(a.get("href"), base_url)
            if url:
                cards.append(CardSummary(url=url, headline=self.text_of(a)))
        return cards

    def extract(self, soup: BeautifulSoup, url: str) -> Extraction:
        schema = soup.select_one(".factcheck-schema")
        if schema is None:
            return Extraction(exists=False)

        h1 = soup.select_one(".single-post-header h1") or soup.select_one("h1")
        date_el = soup.select_one(".single-post-meta .date")

        schema_text = schema.get_text(" ").lower()
        label = 0 if "false" in schema_text else 1

        # 內文不包含 schema 區塊
        content = None
        root = soup.select_one("section.fw-content")
        if root is not None:
            root = copy.copy(root)
            for bad in root.select(".factcheck-schema"):
                bad.decompose()
            content = self.clean_body(root)

        return Extraction(
            headline=self.text_of(h1),
            published_at_raw=self.text_of(date_el),
            content=content,
            label=label,
        )
