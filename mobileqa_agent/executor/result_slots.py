import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

from mobileqa_agent.data import AnalysisResult, TransitionItem
from mobileqa_agent.executor.errors import StrategyInvariantViolation

ProgressCallback = Callable[[int, int], Union[None, Awaitable[None]]]


class ResultSlotArray:
    """Fixed-size, index-addressed store for out-of-order completions.

    Filling a slot, bumping the completion counter and notifying the
    progress callback happen as one step under the same lock, so progress
    reports are strictly increasing.
    """

    def __init__(self, count: int, on_progress: Optional[ProgressCallback] = None):
        self.count = count
        self._slots: List[Optional[AnalysisResult]] = [None] * count
        self._on_progress = on_progress
        self._lock = asyncio.Lock()
        self.completed = 0

    async def fill(self, index: int, result: AnalysisResult):
        async with self._lock:
            if self._slots[index] is not None:
                raise StrategyInvariantViolation(f"Result slot {index} was written twice")
            self._slots[index] = result
            self.completed += 1
            await self._notify(self.completed)

    async def _notify(self, completed: int):
        if self._on_progress is None:
            return
        try:
            outcome = self._on_progress(completed, self.count)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logging.warning(f"Progress callback failed at {completed}/{self.count}: {e}")

    def is_filled(self, index: int) -> bool:
        return self._slots[index] is not None

    def empty_indices(self) -> List[int]:
        return [i for i, slot in enumerate(self._slots) if slot is None]

    async def finalize(self, items: List[TransitionItem]) -> List[AnalysisResult]:
        """Return results in index order.

        A slot still empty at this point is a runner defect: it is logged and
        given an error placeholder so the caller still gets ``count`` results.
        """
        missing = self.empty_indices()
        if missing:
            violation = StrategyInvariantViolation(f"Result slots left empty after batch: {missing}")
            logging.error(str(violation))
            for index in missing:
                await self.fill(index, AnalysisResult.failed(items[index], str(violation)))
        return list(self._slots)
