import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional

from mobileqa_agent.data import (
    AnalysisResult,
    HistoryEntry,
    StrategyType,
    TransitionAnalysisConfig,
    TransitionItem,
)
from mobileqa_agent.executor.concurrency import ConcurrencyLimiter
from mobileqa_agent.executor.history import HistoryWindow
from mobileqa_agent.executor.result_slots import ResultSlotArray
from mobileqa_agent.executor.strategy import BatchStrategy
from mobileqa_agent.executor.transition_analyzer import TransitionAnalyzer

ItemCallback = Callable[[TransitionItem, AnalysisResult], Awaitable[None]]


class BatchRunContext:
    """Everything a runner shares across the items of one pipeline run."""

    def __init__(
        self,
        analyzer: TransitionAnalyzer,
        config: TransitionAnalysisConfig,
        strategy: BatchStrategy,
        slots: ResultSlotArray,
        history: HistoryWindow,
        cancel_event: Optional[asyncio.Event] = None,
        on_item_done: Optional[ItemCallback] = None,
    ):
        self.analyzer = analyzer
        self.config = config
        self.strategy = strategy
        self.slots = slots
        self.history = history
        self.limiter = ConcurrencyLimiter(strategy.max_concurrency)
        self.cancel_event = cancel_event
        self.on_item_done = on_item_done

    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    async def history_snapshot(self) -> List[HistoryEntry]:
        if not self.config.include_historical_context:
            return []
        return await self.history.snapshot(self.config.history_depth)

    async def complete(self, item: TransitionItem, result: AnalysisResult):
        await self.slots.fill(item.index, result)
        if self.on_item_done is not None:
            await self.on_item_done(item, result)


class BaseStrategyRunner(ABC):
    """Base class for strategy runners.

    Every runner fills each item's slot exactly once, error placeholders
    included, and never lets one item's failure stop the others.
    """

    @abstractmethod
    async def run(self, ctx: BatchRunContext, items: List[TransitionItem]):
        pass

    async def _analyze_and_record(self, ctx: BatchRunContext, item: TransitionItem):
        snapshot = await ctx.history_snapshot()
        logging.info(f"Analyzing transition {item.index + 1} of {ctx.slots.count} (history: {len(snapshot)})")
        result = await ctx.analyzer.analyze(item, snapshot)
        await ctx.history.append(HistoryEntry(index=item.index, result=result))
        await ctx.complete(item, result)

    async def _cancel_item(self, ctx: BatchRunContext, item: TransitionItem):
        logging.warning(f"Transition {item.index + 1} cancelled before dispatch")
        await ctx.complete(item, AnalysisResult.cancelled(item))

    async def _dispatch(self, ctx: BatchRunContext, item: TransitionItem):
        if ctx.is_cancelled():
            await self._cancel_item(ctx, item)
            return
        async with ctx.limiter.permit():
            if ctx.is_cancelled():
                await self._cancel_item(ctx, item)
                return
            # History is appended before the permit is released, so a waiter
            # admitted next sees this item's result.
            await self._analyze_and_record(ctx, item)

    @staticmethod
    async def _gather_all(tasks: List[asyncio.Task]):
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            raise


class SequentialRunner(BaseStrategyRunner):
    """Items one at a time in index order; each sees every prior result."""

    async def run(self, ctx: BatchRunContext, items: List[TransitionItem]):
        for item in items:
            if ctx.is_cancelled():
                await self._cancel_item(ctx, item)
                continue
            await self._analyze_and_record(ctx, item)


class BoundedParallelRunner(BaseStrategyRunner):
    """All items dispatched at once, the limiter keeps at most
    ``max_concurrency`` of them in flight."""

    async def run(self, ctx: BatchRunContext, items: List[TransitionItem]):
        tasks = [asyncio.create_task(self._dispatch(ctx, item)) for item in items]
        await self._gather_all(tasks)


class ChunkedRunner(BaseStrategyRunner):
    """Consecutive chunks processed in order; inside a chunk items are
    dispatched with a short stagger under the shared limiter."""

    async def run(self, ctx: BatchRunContext, items: List[TransitionItem]):
        chunk_size = ctx.strategy.chunk_size or len(items)
        chunks = [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]
        stagger = ctx.config.dispatch_stagger_seconds

        for chunk_idx, chunk in enumerate(chunks):
            logging.info(f"Executing chunk {chunk_idx + 1}/{len(chunks)} with {len(chunk)} transitions")
            tasks = []
            for position, item in enumerate(chunk):
                if position > 0 and stagger > 0:
                    await asyncio.sleep(stagger)
                tasks.append(asyncio.create_task(self._dispatch(ctx, item)))
            await self._gather_all(tasks)
            logging.info(f"Chunk {chunk_idx + 1} completed")


STRATEGY_RUNNERS = {
    StrategyType.SEQUENTIAL: SequentialRunner(),
    StrategyType.BOUNDED_PARALLEL: BoundedParallelRunner(),
    StrategyType.CHUNKED: ChunkedRunner(),
}


def get_runner(strategy: BatchStrategy) -> BaseStrategyRunner:
    runner = STRATEGY_RUNNERS.get(strategy.type)
    if not runner:
        raise ValueError(f"No runner available for strategy: {strategy.type}")
    return runner
