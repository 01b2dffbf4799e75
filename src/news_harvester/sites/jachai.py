"""Jachai 事實查核（分頁網址）。

來源：jachai.org：孟加拉文事實查核網站。
擷取方式：列表頁 /fact-checks/page/<n> 已提供標題、分類與發佈時間，
文章頁只需擷取 section.entry-body 內文。此分類全為不實資訊，標籤固定為 0。
"""

import re

from bs4 import BeautifulSoup

from .base import Extraction, Site
from ..identity import slug_from_url
from ..models import CardSummary

BASE_URL = "https://www.jachai.org/fact-checks/page/{page}"


class JachaiSite(Site):
    key = "jachai"
    publisher = None  # 由網址主機名稱推導
    label = 0
    mode = "offset"
    end_page = 500
    concurrency = 1

    id_patterns = (re.compile(r"post-(\d+)"),)

    article_ready_selector = "section.entry-body"
    article_ready_timeout = 5.0

    def list_url(self, page: int) -> str:
        return BASE_URL.format(page=page)

    def parse_cards(self, soup: BeautifulSoup, base_url: str) -> list[CardSummary]:
        cards: list[CardSummary] = []
        for el in soup.select("article.list-view"):
            title_a = el.select_one("header.entry-header h2.entry-title a")
            url = self.absolute_url(title_a.get("href") if title_a else None, base_url)
            headline = self.text_of(title_a)
            if not url or not headline:
                continue

            # 分類取自分類連結最後一段 slug
            cat_a = el.select_one("header.entry-header .entry-category a")
            cat_href = self.absolute_url(cat_a.get("href") if cat_a else None, base_url)
            date_meta = el.select_one("header.entry-header meta[itemprop='datePublished']")

            cards.append(CardSummary(
                url=url,
                headline=headline,
                category=slug_from_url(cat_href) if cat_href else None,
                published_at=date_meta.get("content") if date_meta else None,
            ))
        return cards

    def extract(self, soup: BeautifulSoup, url: str) -> Extraction:
        body = soup.select_one("section.entry-body")
        # 保留段落間的一個空行
        return Extraction(content=self.clean_body(body, paragraph_sep="\n\n"))
