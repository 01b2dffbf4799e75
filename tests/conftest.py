"""全域測試 fixtures：HTML fixture 讀取、假網站與假渲染器。"""

import asyncio
from pathlib import Path

import pytest

from news_harvester.errors import NavigationFailure
from news_harvester.models import CardSummary, CrawlRun
from news_harvester.render import ControlState, RenderedPage, Renderer
from news_harvester.sites.base import Extraction, Site

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "html"

BASE = "https://fake.test"


@pytest.fixture
def fixture_dir() -> Path:
    """回傳 HTML fixture 目錄路徑。"""
    return FIXTURES_DIR


def load_fixture(name: str) -> str:
    """讀取 HTML fixture 檔案。"""
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


# ── 假網站 ──


class FakeSite(Site):
    """測試用網站：卡片為 a.card，內文為 div.body，.skip-me 代表缺少內容標記。"""
    key = "fake"
    publisher = "fake-pub"
    category = "news"
    label = 1
    mode = "offset"
    start_url = f"{BASE}/stream"
    load_more_selector = "button.more"

    def list_url(self, page: int) -> str:
        return f"{BASE}/list/{page}"

    def parse_cards(self, soup, base_url):
        cards = []
        for a in soup.select("a.card[href]"):
            url = self.absolute_url(a.get("href"), base_url)
            if url:
                cards.append(CardSummary(url=url, headline=self.text_of(a)))
        return cards

    def is_exhausted(self, soup):
        btn = soup.select_one("button.more")
        return btn is not None and "no more" in btn.get_text()

    def extract(self, soup, url):
        if soup.select_one(".skip-me") is not None:
            return Extraction(exists=False)
        return Extraction(
            headline=self.text_of(soup.select_one("h1")),
            published_at_raw=(soup.select_one("time") or {}).get("datetime"),
            content=self.clean_body(soup.select_one("div.body")),
        )


def list_html(hrefs: list[str]) -> str:
    links = "".join(f'<a class="card" href="{h}">Card {h}</a>' for h in hrefs)
    return f"<html><body>{links}</body></html>"


def article_html(headline: str | None = "Headline", body: str | None = "Body text",
                 skip: bool = False) -> str:
    parts = []
    if headline is not None:
        parts.append(f"<h1>{headline}</h1>")
    parts.append('<time datetime="2023-08-22T14:38:19Z"></time>')
    if body is not None:
        parts.append(f'<div class="body"><p>{body}</p></div>')
    if skip:
        parts.append('<div class="skip-me"></div>')
    return f"<html><body>{''.join(parts)}</body></html>"


# ── 假渲染器 ──


class FakePage(RenderedPage):
    def __init__(self, url: str, status: int, html: str):
        self.url = url
        self.status = status
        self.html = html
        self.closed = False

    async def content(self) -> str:
        return self.html

    async def control_state(self, selector: str) -> ControlState:
        return ControlState.ABSENT

    async def click(self, selector: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        self.closed = True


class LatePage(FakePage):
    """內容延後渲染的頁面：前 reveal_after - 1 次讀取 DOM 都是空白頁。

    reveal_after=None 表示內容永遠不出現。
    """

    def __init__(self, url: str, html: str, reveal_after: int | None = 2):
        super().__init__(url, 200, html)
        self.reveal_after = reveal_after
        self.reads = 0

    async def content(self) -> str:
        self.reads += 1
        if self.reveal_after is None or self.reads < self.reveal_after:
            return "<html><body></body></html>"
        return self.html


class StreamPage(FakePage):
    """「載入更多」頁面：每次點擊顯示下一段卡片，全部顯示後按鈕變為 no more。

    hidden_polls：前幾次查詢按鈕時回報隱藏。
    keep_button：全部顯示後仍保留可點的按鈕（不出現結束標記）。
    """

    def __init__(self, url: str, chunks: list[list[str]], hidden_polls: int = 0,
                 has_button: bool = True, keep_button: bool = False):
        super().__init__(url, 200, "")
        self.chunks = chunks
        self.revealed = 1
        self.hidden_polls = hidden_polls
        self.has_button = has_button
        self.keep_button = keep_button
        self.clicks = 0

    @property
    def done(self) -> bool:
        return self.revealed >= len(self.chunks) and not self.keep_button

    async def content(self) -> str:
        hrefs = [h for chunk in self.chunks[: self.revealed] for h in chunk]
        links = "".join(f'<a class="card" href="{h}">Card</a>' for h in hrefs)
        button = ""
        if self.has_button:
            text = "no more" if self.done else "load more"
            button = f'<button class="more">{text}</button>'
        return f"<html><body>{links}{button}</body></html>"

    async def control_state(self, selector: str) -> ControlState:
        if not self.has_button:
            return ControlState.ABSENT
        if self.hidden_polls > 0:
            self.hidden_polls -= 1
            return ControlState.HIDDEN
        return ControlState.READY

    async def click(self, selector: str) -> None:
        self.clicks += 1
        self.revealed = min(self.revealed + 1, len(self.chunks))


class FakeRenderer(Renderer):
    """以 url → 回應對照表模擬渲染器，並記錄開啟順序與同時開啟數。

    對照值可為 HTML 字串、(status, html)、FakePage 或 Exception。
    """

    interactive = True

    def __init__(self, pages: dict | None = None, default=None, latency: float = 0.0):
        self.pages = pages or {}
        self.default = default
        self.latency = latency
        self.opened: list[str] = []
        self.active = 0
        self.max_active = 0

    async def open(self, url, headers, timeout):
        self.opened.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            value = self.pages.get(url, self.default)
        finally:
            self.active -= 1

        if value is None:
            return FakePage(url, 404, "<html></html>")
        if isinstance(value, Exception):
            raise value
        if isinstance(value, FakePage):
            return value
        if isinstance(value, tuple):
            status, html = value
            return FakePage(url, status, html)
        return FakePage(url, 200, value)


def nav_failure(url: str = f"{BASE}/x") -> NavigationFailure:
    return NavigationFailure(url, "timeout")


def make_run(tmp_path: Path, **overrides) -> CrawlRun:
    """測試用 CrawlRun：無延遲、短等待。"""
    values = dict(
        output_dir=tmp_path,
        start_page=1,
        end_page=70,
        concurrency=3,
        delay_base=0.0,
        delay_jitter=0.0,
        nav_timeout=1.0,
        max_rounds=50,
        settle_interval=0.01,
        sentinel_timeout=0.05,
        poll_interval=0.01,
    )
    values.update(overrides)
    return CrawlRun(**values)


@pytest.fixture
def fake_site() -> FakeSite:
    return FakeSite()
