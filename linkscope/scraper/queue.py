"""Bounded, FIFO admission queue for browser-driven extraction tasks.

Everything that touches the shared browser runs through :class:`TaskQueue`,
so its concurrency ceiling is the only thing standing between user traffic
and an out-of-memory Chromium.

Timeouts are measured from admission (time spent waiting for a slot does not
count).  On expiry the task coroutine is cancelled and the caller gets
:class:`~linkscope.errors.QueueTimeoutError`; the cancelled coroutine's
``finally`` blocks (closing its browsing context) run before the slot is
handed to the next waiter.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, TypeVar

from linkscope.errors import QueueTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskQueue:
    """Run at most ``concurrency`` tasks at once; admit the rest in order.

    Args:
        concurrency: Maximum number of tasks running simultaneously.
        timeout: Default per-task timeout in seconds (``None`` disables).
    """

    def __init__(self, concurrency: int = 4, timeout: float | None = 60.0) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._concurrency = concurrency
        self._timeout = timeout
        self._running = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def size(self) -> int:
        """Number of tasks waiting for a slot."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    @property
    def pending(self) -> int:
        """Number of tasks currently running."""
        return self._running

    @property
    def idle(self) -> bool:
        return self._running == 0 and self.size == 0

    async def submit(
        self,
        factory: Callable[[], Awaitable[T]],
        timeout: float | None = None,
    ) -> T:
        """Wait for a slot, then run ``factory()`` under the task timeout.

        Args:
            factory: Zero-argument callable returning the task coroutine.  It
                is only called once the task has been admitted.
            timeout: Per-task timeout in seconds; defaults to the queue's.

        Raises:
            QueueTimeoutError: The task did not finish in time.
        """
        timeout = self._timeout if timeout is None else timeout
        await self._admit()
        logger.debug(
            "[ScrapeQueue] Task started. Queue size: %d, Pending: %d",
            self.size,
            self._running,
        )
        try:
            return await self._run(factory, timeout)
        finally:
            self._leave()
            if self.idle:
                logger.debug("[ScrapeQueue] Queue is now idle.")

    async def _run(self, factory: Callable[[], Awaitable[T]], timeout: float | None) -> T:
        # A TimeoutError raised by the task itself is its own failure, not an expiry.
        task = asyncio.ensure_future(factory())
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            await asyncio.wait({task})
            raise
        if task not in done:
            task.cancel()
            await asyncio.wait({task})
            raise QueueTimeoutError(timeout or 0)
        return task.result()

    async def _admit(self) -> None:
        if self._running < self._concurrency and not self._waiters:
            self._running += 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # A slot was handed over just before the cancellation landed.
                self._leave()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def _leave(self) -> None:
        # Hand the slot straight to the oldest live waiter, keeping _running.
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._running -= 1
