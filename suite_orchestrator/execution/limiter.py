"""Counting semaphore with FIFO hand-off for bounding parallel test runs.

The limiter lives on a single asyncio event loop, so its permit counter
and wait queue are only touched from one thread and need no extra lock.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from typing import AsyncIterator


class Permit:
    """Handle returned by ConcurrencyLimiter.acquire().

    Must be released exactly once.
    """

    def __init__(self, limiter: ConcurrencyLimiter) -> None:
        self._limiter = limiter
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Return the permit to the limiter.

        Raises:
            RuntimeError: If this permit was already released.
        """
        if self._released:
            raise RuntimeError("Permit already released")
        self._released = True
        self._limiter._release()


class ConcurrencyLimiter:
    """Bounded-parallelism primitive with first-come first-served waiters.

    A released permit is handed directly to the oldest live waiter rather
    than returned to the pool, so a newly arriving caller can never take a
    permit ahead of a caller that is already waiting.

    Also records the number of permits currently held and the highest value
    that number reached, for diagnostics.
    """

    def __init__(self, permits: int) -> None:
        if permits < 1:
            raise ValueError(f"permits must be >= 1, got {permits}")
        self.capacity = permits
        self._available = permits
        self._waiters: deque[asyncio.Future[None]] = deque()
        self.active = 0
        self.peak = 0

    @property
    def available(self) -> int:
        """Permits that can be acquired without waiting."""
        return self._available

    @property
    def waiting(self) -> int:
        """Number of callers currently suspended in acquire()."""
        return sum(1 for fut in self._waiters if not fut.done())

    def locked(self) -> bool:
        return self._available == 0

    async def acquire(self) -> Permit:
        """Wait for a permit.

        Returns:
            A Permit that must be released exactly once.
        """
        # Live waiters only exist while no permits are available, so taking
        # a free permit here never overtakes an earlier caller.
        if self._available > 0:
            self._available -= 1
        else:
            fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._waiters.append(fut)
            try:
                await fut
            except asyncio.CancelledError:
                if fut.done() and not fut.cancelled():
                    # The permit was handed to us just before cancellation
                    self._hand_off()
                raise

        self.active += 1
        self.peak = max(self.peak, self.active)
        return Permit(self)

    @contextlib.asynccontextmanager
    async def hold(self) -> AsyncIterator[Permit]:
        """Acquire a permit for the duration of an ``async with`` block."""
        permit = await self.acquire()
        try:
            yield permit
        finally:
            if not permit.released:
                permit.release()

    def _release(self) -> None:
        self.active -= 1
        self._hand_off()

    def _hand_off(self) -> None:
        while self._waiters:
            fut = self._waiters.popleft()
            # Cancelled waiters are skipped
            if not fut.done():
                fut.set_result(None)
                return
        self._available += 1
