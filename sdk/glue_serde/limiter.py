"""
Concurrency limiter for outbound registry calls.

The registry may throttle callers or have a small connection budget, so every
call the codec makes goes through a ConcurrencyLimiter. However many resolve
or register calls the application issues concurrently, at most `limit` of
them talk to the registry at the same time.

Invariants:
    - active never exceeds limit
    - Waiters are admitted strictly in arrival order (FIFO)
    - A slot is released when the task finishes, whether it succeeded or not
    - A released slot goes straight to the next waiter, late arrivals cannot
      overtake the queue

How to change safely:
    - Keep the no-await window between the admission check and the increment
    - Cancellation of a waiter must give back a slot it was already handed
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyLimiter:
    """Counting admission gate with a FIFO wait queue.

    Example:
        >>> limiter = ConcurrencyLimiter(limit=2)
        >>> version = await limiter.run(lambda: client.get_schema_version(schema_id))
    """

    def __init__(self, limit: int = 1) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum number of concurrently running tasks (clamped to >= 1)
        """
        self.limit = max(1, int(limit))
        self._active = 0
        self._waiters: Deque[asyncio.Future] = deque()

    @property
    def active(self) -> int:
        """Number of tasks currently holding a slot."""
        return self._active

    @property
    def waiting(self) -> int:
        """Number of callers queued for a slot."""
        return sum(1 for w in self._waiters if not w.done())

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run fn once a slot is free.

        Args:
            fn: Zero-argument callable returning the awaitable to run

        Returns:
            Whatever fn's awaitable returns. Exceptions propagate unchanged.
        """
        await self._acquire()
        try:
            return await fn()
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._active < self.limit and not self._waiters:
            self._active += 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug(
            "Registry call queued",
            extra={"active": self._active, "queued": len(self._waiters)},
        )
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # slot was handed over before the cancellation landed
                self._release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # hand the slot over, active stays the same
                waiter.set_result(None)
                return
        self._active -= 1
