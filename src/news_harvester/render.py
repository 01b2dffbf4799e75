"""頁面渲染模組：Playwright（可互動）與 httpx（靜態）兩種實作。

Renderer.open() 回傳 RenderedPage，提供 DOM 快照（BeautifulSoup）、
選擇器查詢、點擊與條件等待。導覽失敗一律轉為 NavigationFailure。
"""

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from typing import Callable

import httpx
from bs4 import BeautifulSoup, Tag
from playwright.async_api import (
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import HEADLESS, USER_AGENT
from .errors import NavigationFailure

logger = logging.getLogger(__name__)


class ControlState(enum.Enum):
    """「載入更多」等控制元件的狀態。"""
    ABSENT = "absent"   # 不存在
    HIDDEN = "hidden"   # 存在但隱藏或停用
    READY = "ready"     # 可點擊


class RenderedPage(ABC):
    """已渲染的頁面。"""

    url: str
    status: int

    @abstractmethod
    async def content(self) -> str:
        """回傳目前的 HTML。"""
        ...

    async def snapshot(self) -> BeautifulSoup:
        """解析目前 DOM 為 BeautifulSoup。每次呼叫都重新取得。"""
        return BeautifulSoup(await self.content(), "lxml")

    async def query(self, selector: str) -> list[Tag]:
        return (await self.snapshot()).select(selector)

    async def query_one(self, selector: str) -> Tag | None:
        return (await self.snapshot()).select_one(selector)

    @abstractmethod
    async def control_state(self, selector: str) -> ControlState:
        ...

    @abstractmethod
    async def click(self, selector: str) -> None:
        ...

    async def wait_for(
        self,
        predicate: Callable[[BeautifulSoup], bool],
        poll: float,
        timeout: float,
    ) -> bool:
        """每 poll 秒檢查一次 predicate，成立回傳 True，逾時回傳 False。"""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            if predicate(await self.snapshot()):
                return True
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(poll, remaining))

    async def wait_for_selector(self, selector: str, timeout: float, poll: float = 0.25) -> bool:
        """等待 selector 出現在 DOM 中。出現回傳 True，逾時回傳 False。"""
        return await self.wait_for(lambda soup: soup.select_one(selector) is not None, poll, timeout)

    async def close(self) -> None:
        pass


class Renderer(ABC):
    """頁面渲染器，作為 async context manager 管理生命週期。"""

    interactive: bool = False

    async def __aenter__(self) -> "Renderer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    @abstractmethod
    async def open(self, url: str, headers: dict[str, str], timeout: float) -> RenderedPage:
        """導覽至 url。timeout 單位為秒。"""
        ...


# ── Playwright ──


class PlaywrightPage(RenderedPage):
    def __init__(self, page, url: str, status: int):
        self._page = page
        self.url = url
        self.status = status

    async def content(self) -> str:
        try:
            return await self._page.content()
        except PlaywrightError as e:
            raise NavigationFailure(self.url, f"讀取 DOM 失敗：{e}") from e

    async def control_state(self, selector: str) -> ControlState:
        try:
            handle = await self._page.query_selector(selector)
            if handle is None:
                return ControlState.ABSENT
            if await handle.is_visible() and await handle.is_enabled():
                return ControlState.READY
            return ControlState.HIDDEN
        except PlaywrightError as e:
            raise NavigationFailure(self.url, f"查詢元件失敗：{e}") from e

    async def wait_for_selector(self, selector: str, timeout: float, poll: float = 0.25) -> bool:
        try:
            await self._page.wait_for_selector(selector, state="attached", timeout=timeout * 1000)
        except PlaywrightTimeoutError:
            return False
        except PlaywrightError as e:
            raise NavigationFailure(self.url, f"等待元素失敗：{e}") from e
        return True

    async def click(self, selector: str) -> None:
        await self._page.click(selector, delay=40)

    async def close(self) -> None:
        try:
            await self._page.close()
        except PlaywrightError as e:
            logger.debug(f"關閉分頁失敗 {self.url}：{e}")


class PlaywrightRenderer(Renderer):
    """以 headless Chromium 渲染頁面，每次 open() 開啟新分頁。"""

    interactive = True

    def __init__(self, headless: bool = HEADLESS, user_agent: str = USER_AGENT):
        self.headless = headless
        self.user_agent = user_agent
        self._playwright = None
        self._browser = None
        self._context = None

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=[
                "--no-sandbox",
                "--disable-setuid-sandbox",
                "--disable-dev-shm-usage",
            ],
        )
        self._context = await self._browser.new_context(
            user_agent=self.user_agent,
            viewport={"width": 1366, "height": 900},
        )
        logger.info("Chromium 已啟動")

    async def stop(self) -> None:
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._context = self._browser = self._playwright = None

    async def open(self, url: str, headers: dict[str, str], timeout: float) -> RenderedPage:
        if self._context is None:
            raise RuntimeError("PlaywrightRenderer 尚未啟動")

        page = await self._context.new_page()
        page.set_default_timeout(timeout * 1000)
        try:
            await page.set_extra_http_headers(headers)
            response = await page.goto(url, wait_until="domcontentloaded", timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            await page.close()
            raise NavigationFailure(url, f"載入逾時（{timeout:g} 秒）") from e
        except PlaywrightError as e:
            await page.close()
            raise NavigationFailure(url, str(e).splitlines()[0]) from e

        status = response.status if response is not None else 0
        return PlaywrightPage(page, url, status)


# ── httpx ──


class StaticPage(RenderedPage):
    """HTTP 回應的靜態快照，不支援互動。"""

    def __init__(self, url: str, status: int, html: str):
        self.url = url
        self.status = status
        self._html = html

    async def content(self) -> str:
        return self._html

    async def control_state(self, selector: str) -> ControlState:
        # 靜態頁面無法點擊，元件存在也視為停用
        if (await self.query_one(selector)) is None:
            return ControlState.ABSENT
        return ControlState.HIDDEN

    async def wait_for_selector(self, selector: str, timeout: float, poll: float = 0.25) -> bool:
        # 靜態 HTML 不會再變動，檢查一次即可
        return (await self.query_one(selector)) is not None

    async def click(self, selector: str) -> None:
        raise NotImplementedError("靜態頁面不支援點擊")


class HttpRenderer(Renderer):
    """以 httpx 取得 HTML，不執行 JavaScript。適用於分頁網址模式。"""

    def __init__(self, user_agent: str = USER_AGENT, client: httpx.AsyncClient | None = None):
        self.user_agent = user_agent
        self._client = client
        self._owns_client = client is None

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
            )

    async def stop(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def open(self, url: str, headers: dict[str, str], timeout: float) -> RenderedPage:
        if self._client is None:
            raise RuntimeError("HttpRenderer 尚未啟動")
        try:
            resp = await self._client.get(url, headers=headers, timeout=timeout)
        except httpx.TimeoutException as e:
            raise NavigationFailure(url, f"載入逾時（{timeout:g} 秒）") from e
        except httpx.HTTPError as e:
            raise NavigationFailure(url, str(e) or type(e).__name__) from e
        return StaticPage(str(resp.url), resp.status_code, resp.text)
