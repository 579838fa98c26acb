"""Counting semaphore with FIFO admission for segment transcription tasks."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar('T')

DEFAULT_MAX_CONCURRENT = 3


class ConcurrencyLimiter:
    """Bounds in-flight tasks to ``max_concurrent``.

    A released permit is handed straight to the oldest waiter, so admission
    order under contention is first come, first served. Completion order is
    not guaranteed.
    """

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT) -> None:
        if max_concurrent < 1:
            raise ValueError(f'max_concurrent must be >= 1, got {max_concurrent}')
        self._max = max_concurrent
        self._permits = max_concurrent
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._active = 0
        self._peak_active = 0

    @property
    def max_concurrent(self) -> int:
        return self._max

    @property
    def active(self) -> int:
        return self._active

    @property
    def peak_active(self) -> int:
        """Highest number of simultaneously running tasks seen so far."""
        return self._peak_active

    @property
    def waiting(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    async def acquire(self) -> None:
        if self._permits > 0 and not self.waiting:
            self._permits -= 1
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # permit was already handed over; pass it on
                self.release()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._permits += 1

    async def acquire_and_run(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run *task* once a permit is available; the permit is released however it ends."""
        await self.acquire()
        self._active += 1
        self._peak_active = max(self._peak_active, self._active)
        try:
            return await task()
        finally:
            self._active -= 1
            self.release()
