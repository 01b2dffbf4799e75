"""走訪控制模組：決定要翻到哪一頁、何時停止，並把每批卡片交給 dispatcher。

兩種分頁方式：
- OffsetPager：以網址中的頁碼翻頁（/page/2、/page/3 ...），
  遇到錯誤狀態碼、零張卡片或超過頁碼上限即停止。
- IncrementalLoader：單一網址，反覆點擊「載入更多」，
  出現結束標記、按鈕消失或達到迴圈上限即停止。

每一批次的寫入都在下一批次開始擷取前完成，因此中途當機只會遺失尚未開始的批次。
已見集合（seen）只存在於單次執行中，不會跨執行保存。
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod

from .dispatcher import Batch, DelayPolicy, dispatch
from .errors import NavigationFailure
from .models import CardSummary, CrawlRun, ListPage
from .render import ControlState, RenderedPage, Renderer
from .sink import RecordSink
from .sites.base import Site
from .worker import FetchOutcome, run_worker

logger = logging.getLogger(__name__)

# 點擊後輪詢結束標記的間隔（秒）
SENTINEL_POLL = 0.5


class Traversal(ABC):
    """走訪控制器基礎類別，獨佔 seen 集合與計數器。"""

    def __init__(self, site: Site, renderer: Renderer, sink: RecordSink, config: CrawlRun):
        self.site = site
        self.renderer = renderer
        self.sink = sink
        self.config = config
        self.delay = DelayPolicy(config.delay_base, config.delay_jitter)
        self.seen: set[str] = set()
        self.total = 0
        self.failed = 0
        self.skipped = 0

    @abstractmethod
    async def run(self) -> int:
        """執行走訪，回傳本次寫入的紀錄數。"""
        ...

    def _remaining(self) -> int | None:
        if self.config.max_articles is None:
            return None
        return max(self.config.max_articles - self.total, 0)

    def _limit_reached(self) -> bool:
        remaining = self._remaining()
        return remaining is not None and remaining <= 0

    def _take(self, cards: list[CardSummary]) -> list[CardSummary]:
        """依剩餘篇數上限截斷卡片。"""
        remaining = self._remaining()
        return cards if remaining is None else cards[:remaining]

    def _jitter(self) -> float:
        if self.config.delay_jitter <= 0:
            return 0.0
        return random.uniform(0, self.config.delay_jitter)

    async def _await_list_ready(self, page: RenderedPage) -> bool:
        """等待列表卡片渲染完成。逾時只記錄警告，之後的快照照常解析。"""
        selector = self.site.list_ready_selector
        if not selector:
            return True
        if await page.wait_for_selector(selector, self.site.list_ready_timeout):
            return True
        logger.warning(f"等待 {selector} 逾時（{self.site.list_ready_timeout:g} 秒）：{page.url}")
        return False

    async def _worker(self, card: CardSummary) -> FetchOutcome:
        return await run_worker(self.renderer, self.site, card, self.config)

    async def _process(self, page: ListPage) -> Batch:
        """分派一批卡片並寫入所有成功結果。寫入失敗會直接拋出。"""
        batch = await dispatch(page.cards, self._worker, self.config.concurrency, self.delay)
        for record in batch.records:
            self.sink.append(record)
            self.total += 1
            logger.info(f"已儲存 [{record.article_id}] {(record.headline or '(無標題)')[:70]}")
        self.failed += batch.failed
        self.skipped += batch.skipped
        return batch


class OffsetPager(Traversal):
    """以頁碼翻頁的走訪控制器。"""

    async def run(self) -> int:
        n = self.config.start_page
        end = self.config.end_page

        while end is None or n <= end:
            if self._limit_reached():
                logger.info(f"已達篇數上限 {self.config.max_articles}，停止")
                break

            page = await self._fetch_list(n)
            if page is None or page.exhausted:
                break

            cards = self._dedupe(page.cards)
            if cards:
                batch = await self._process(ListPage(n, cards))
                logger.info(
                    f"第 {n} 頁：儲存 {batch.succeeded}、略過 {batch.skipped}、"
                    f"失敗 {batch.failed}（累計 {self.total}）"
                )
            else:
                logger.info(f"第 {n} 頁：沒有新卡片")
            n += 1
        else:
            logger.info(f"已到達頁碼上限 {end}，停止")

        return self.total

    async def _fetch_list(self, n: int) -> ListPage | None:
        """載入第 n 頁列表。載入失敗回傳 None（中止執行）。"""
        url = self.site.list_url(n)
        logger.info(f"開啟列表：{url}")
        try:
            rendered = await self.renderer.open(url, self.site.headers, self.config.nav_timeout)
            try:
                if rendered.status >= 400:
                    logger.info(f"HTTP {rendered.status}，停止")
                    return ListPage(n, exhausted=True)
                await self._await_list_ready(rendered)
                soup = await rendered.snapshot()
            finally:
                await rendered.close()
        except NavigationFailure as e:
            logger.error(f"列表頁載入失敗，中止執行：{url}：{e.reason}")
            return None

        cards = self.site.parse_cards(soup, rendered.url)
        if not cards:
            logger.info(f"第 {n} 頁沒有卡片，停止")
            return ListPage(n, exhausted=True)
        logger.info(f"第 {n} 頁找到 {len(cards)} 張卡片")
        return ListPage(n, cards)

    def _dedupe(self, cards: list[CardSummary]) -> list[CardSummary]:
        """頁內去重；啟用 dedupe_across_pages 時也排除先前頁面已分派的網址。"""
        local: set[str] = set()
        unique: list[CardSummary] = []
        for card in cards:
            if card.url in local:
                continue
            local.add(card.url)
            if self.config.dedupe_across_pages and card.url in self.seen:
                continue
            unique.append(card)

        unique = self._take(unique)
        self.seen.update(c.url for c in unique)
        return unique


class IncrementalLoader(Traversal):
    """反覆點擊「載入更多」的走訪控制器。"""

    def __init__(self, site: Site, renderer: Renderer, sink: RecordSink, config: CrawlRun):
        if not renderer.interactive:
            raise ValueError(f"{site.key} 需要可互動的渲染器（Playwright）")
        super().__init__(site, renderer, sink, config)
        self.rounds = 0

    async def run(self) -> int:
        url = self.site.start_url
        logger.info(f"開啟列表：{url}")
        try:
            page = await self.renderer.open(url, self.site.headers, self.config.nav_timeout)
        except NavigationFailure as e:
            logger.warning(f"列表頁載入失敗，結束執行：{url}：{e.reason}")
            return self.total

        try:
            if page.status >= 400:
                logger.warning(f"列表頁 HTTP {page.status}，結束執行")
                return self.total
            await self._expand(page)
        except NavigationFailure as e:
            logger.warning(f"第 {self.rounds} 回合載入失敗，結束執行：{e.reason}")
        finally:
            await page.close()

        return self.total

    async def _expand(self, page: RenderedPage) -> None:
        await self._await_list_ready(page)
        await self._process_new(page)

        for _ in range(self.config.max_rounds):
            if self._limit_reached():
                logger.info(f"已達篇數上限 {self.config.max_articles}，停止")
                return

            soup = await page.snapshot()
            if self.site.is_exhausted(soup):
                logger.info("出現結束標記，停止點擊")
                return

            state = await page.control_state(self.site.load_more_selector)
            if state is ControlState.ABSENT:
                logger.info("找不到「載入更多」按鈕，停止點擊")
                return
            if state is ControlState.HIDDEN:
                # 載入中：稍候再檢查，不計入回合
                await asyncio.sleep(self.config.poll_interval + self._jitter())
                continue

            self.rounds += 1
            logger.info(f"第 {self.rounds} 次點擊「載入更多」")
            try:
                await page.click(self.site.load_more_selector)
            except NavigationFailure:
                raise
            except Exception as e:
                logger.info(f"點擊失敗（忽略）：{e}")

            await self._settle(page)
            await self._process_new(page)
        else:
            logger.info(f"達到迴圈安全上限 {self.config.max_rounds}，停止")

    async def _settle(self, page: RenderedPage) -> None:
        """等待結束標記出現或固定時間經過，先到者為準。

        若結束標記的等待先逾時（回傳 False），仍等滿固定時間。
        離開前取消未完成的一方。
        """
        sentinel = asyncio.create_task(
            page.wait_for(self.site.is_exhausted, SENTINEL_POLL, self.config.sentinel_timeout)
        )
        settle = asyncio.create_task(asyncio.sleep(self.config.settle_interval + self._jitter()))
        try:
            done, _ = await asyncio.wait({sentinel, settle}, return_when=asyncio.FIRST_COMPLETED)
            if sentinel in done and not sentinel.result():
                await settle
        finally:
            for task in (sentinel, settle):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sentinel, settle, return_exceptions=True)

    async def _process_new(self, page: RenderedPage) -> None:
        """重新掃描整頁卡片，只分派尚未見過的網址。"""
        soup = await page.snapshot()
        fresh: list[CardSummary] = []
        for card in self.site.parse_cards(soup, page.url):
            if card.url in self.seen:
                continue
            self.seen.add(card.url)
            fresh.append(card)

        if not fresh:
            return

        # 超出篇數上限的卡片不分派，也不算見過
        taken = self._take(fresh)
        for card in fresh[len(taken):]:
            self.seen.discard(card.url)
        if not taken:
            return

        logger.info(f"第 {self.rounds} 回合：新卡片 {len(taken)} 張")
        batch = await self._process(ListPage(self.rounds, taken))
        logger.info(
            f"第 {self.rounds} 回合：儲存 {batch.succeeded}、略過 {batch.skipped}、"
            f"失敗 {batch.failed}（累計 {self.total}）"
        )
