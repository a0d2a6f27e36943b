import asyncio
from collections import deque
from typing import List

from mobileqa_agent.data import HistoryEntry


class HistoryWindow:
    """Sliding buffer of the most recent completed analyses.

    Holds at most ``2 * history_depth`` entries; older ones are dropped
    first. Under parallel strategies entries arrive in completion order,
    not index order.
    """

    def __init__(self, history_depth: int):
        if history_depth < 0:
            raise ValueError(f"history_depth must be >= 0, got {history_depth}")
        self.history_depth = history_depth
        self.capacity = 2 * history_depth
        self._entries = deque()
        self._lock = asyncio.Lock()
        self.peak_size = 0

    async def snapshot(self, depth: int) -> List[HistoryEntry]:
        """Return up to ``depth`` most recently appended entries, oldest first."""
        if depth <= 0:
            return []
        async with self._lock:
            return list(self._entries)[-depth:]

    async def append(self, entry: HistoryEntry):
        async with self._lock:
            self._entries.append(entry)
            while len(self._entries) > self.capacity:
                self._entries.popleft()
            self.peak_size = max(self.peak_size, len(self._entries))

    def __len__(self):
        return len(self._entries)
