"""並行分派模組：以 semaphore 限制同時進行的文章擷取數量。

每個 worker 先取得 semaphore，再等待禮貌延遲後才發出請求。延遲依其在批次中
的位置錯開：第 i 個 worker 等待 base * (i % limit + 1) 加上隨機抖動。
dispatch() 會等所有 worker 完成才回傳。單一 worker 失敗不影響其他 worker，也不會重試。
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

from .models import ArticleRecord, CardSummary
from .worker import FetchOutcome

logger = logging.getLogger(__name__)

Worker = Callable[[CardSummary], Awaitable[FetchOutcome]]


@dataclass(frozen=True)
class DelayPolicy:
    """禮貌延遲設定（秒）。"""
    base: float = 0.0
    jitter: float = 0.0

    def delay_for(self, index: int, limit: int) -> float:
        """第 index 個 worker 的初始延遲。"""
        delay = self.base * (index % max(limit, 1) + 1)
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)
        return delay


@dataclass
class Batch:
    """一批次的擷取結果，每個輸入網址恰好對應一個 outcome。"""
    outcomes: list[FetchOutcome] = field(default_factory=list)

    @property
    def records(self) -> list[ArticleRecord]:
        return [o.record for o in self.outcomes if o.record is not None]

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded - self.skipped


async def dispatch(
    cards: Sequence[CardSummary],
    worker: Worker,
    limit: int,
    delay: DelayPolicy,
) -> Batch:
    """將卡片分派給最多 limit 個同時執行的 worker，回傳完整批次結果。"""
    if limit < 1:
        raise ValueError(f"limit 必須 >= 1：{limit}")

    semaphore = asyncio.Semaphore(limit)

    async def _run(index: int, card: CardSummary) -> FetchOutcome:
        async with semaphore:
            wait = delay.delay_for(index, limit)
            if wait > 0:
                await asyncio.sleep(wait)
            try:
                return await worker(card)
            except Exception as e:
                # worker 應自行轉換錯誤；此處確保每個網址都有結果
                logger.warning(f"worker 非預期錯誤 {card.url}：{e!r}")
                return FetchOutcome(card, error=e)

    outcomes = await asyncio.gather(*(_run(i, card) for i, card in enumerate(cards)))
    batch = Batch(list(outcomes))
    logger.debug(
        f"批次完成：成功 {batch.succeeded}、略過 {batch.skipped}、失敗 {batch.failed}"
    )
    return batch
