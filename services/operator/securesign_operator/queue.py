"""Rate-limited work queue for reconciliation keys."""

import asyncio
import logging
from collections import deque
from typing import Hashable

logger = logging.getLogger(__name__)


class WorkQueue:
    """
    Coalescing asyncio work queue.

    A key is queued at most once however often it is added, and it is never
    handed to a second worker while one is processing it: adds during
    processing mark the key dirty and it is queued again on ``done``.
    Failed keys are re-added with exponential backoff until ``forget``.
    Must be used from the event loop thread.
    """

    def __init__(self, base_delay: float = 0.5, max_delay: float = 300.0):
        """
        Initialize work queue.

        Args:
            base_delay: Backoff after the first failure, in seconds
            max_delay: Backoff cap, in seconds
        """
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._queue: deque[Hashable] = deque()
        self._dirty: set[Hashable] = set()
        self._processing: set[Hashable] = set()
        self._failures: dict[Hashable, int] = {}
        self._timers: dict[Hashable, tuple[float, asyncio.TimerHandle]] = {}
        self._waiters: deque[asyncio.Future] = deque()
        self._shutdown = False

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def shutting_down(self) -> bool:
        return self._shutdown

    def add(self, key: Hashable) -> None:
        """Queue ``key`` unless it is already waiting."""
        if self._shutdown or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._push(key)

    def _push(self, key: Hashable) -> None:
        self._queue.append(key)
        self._wake()

    def _wake(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                break

    async def get(self) -> Hashable:
        """Wait for the next key and mark it as being processed."""
        while not self._queue:
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            try:
                await waiter
            except asyncio.CancelledError:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)
                elif self._queue:
                    # Pass the wakeup on to another worker.
                    self._wake()
                raise
        key = self._queue.popleft()
        self._processing.add(key)
        self._dirty.discard(key)
        return key

    def done(self, key: Hashable) -> None:
        """Mark processing of ``key`` finished, queueing it again if it was re-added meanwhile."""
        self._processing.discard(key)
        if key in self._dirty:
            self._push(key)

    def add_after(self, key: Hashable, delay: float) -> None:
        """Queue ``key`` once ``delay`` seconds have passed, keeping the earliest pending time."""
        if self._shutdown:
            return
        if delay <= 0:
            self.add(key)
            return
        loop = asyncio.get_running_loop()
        due = loop.time() + delay
        pending = self._timers.get(key)
        if pending is not None:
            if pending[0] <= due:
                return
            pending[1].cancel()
        self._timers[key] = (due, loop.call_at(due, self._fire, key))

    def _fire(self, key: Hashable) -> None:
        self._timers.pop(key, None)
        self.add(key)

    def add_rate_limited(self, key: Hashable) -> float:
        """
        Queue ``key`` after its failure backoff.

        Returns:
            The delay applied, in seconds
        """
        failures = self._failures.get(key, 0)
        self._failures[key] = failures + 1
        delay = min(self.base_delay * (2 ** failures), self.max_delay)
        self.add_after(key, delay)
        return delay

    def forget(self, key: Hashable) -> None:
        """Reset the failure backoff of ``key``."""
        self._failures.pop(key, None)

    def num_requeues(self, key: Hashable) -> int:
        return self._failures.get(key, 0)

    def shut_down(self) -> None:
        """Drop pending timers and stop accepting keys."""
        self._shutdown = True
        for _, handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        logger.debug(f"Work queue shut down with {len(self._queue)} keys pending")
