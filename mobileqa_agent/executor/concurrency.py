import asyncio
import itertools
import logging
from contextlib import asynccontextmanager


class Permit:
    """Handle for one admitted analysis call."""

    __slots__ = ("permit_id", "released")

    def __init__(self, permit_id: int):
        self.permit_id = permit_id
        self.released = False

    def __repr__(self):
        return f"Permit({self.permit_id}, released={self.released})"


class ConcurrencyLimiter:
    """Caps the number of simultaneously in-flight analysis calls.

    Backed by an ``asyncio.Semaphore``: ``admit()`` suspends the caller until
    a permit frees up, waiters are admitted in arrival order.
    """

    def __init__(self, max_concurrency: int):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._ids = itertools.count(1)
        self.in_flight = 0
        self.peak_in_flight = 0

    async def admit(self) -> Permit:
        await self._semaphore.acquire()
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        permit = Permit(next(self._ids))
        logging.debug(f"Admitted {permit}, in flight: {self.in_flight}/{self.max_concurrency}")
        return permit

    def release(self, permit: Permit):
        if permit.released:
            raise RuntimeError(f"{permit} was already released")
        permit.released = True
        self.in_flight -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def permit(self):
        permit = await self.admit()
        try:
            yield permit
        finally:
            self.release(permit)
