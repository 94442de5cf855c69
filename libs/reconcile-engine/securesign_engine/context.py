"""Per-invocation reconciliation context."""

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .errors import DeadlineExceededError


@dataclass
class Context:
    """
    Carries the deadline of one reconciliation invocation.

    Every blocking call made on behalf of an action checks the remaining
    time so that a slow dependency surfaces as a failed invocation instead
    of a hung worker.
    """

    deadline: Optional[float] = None  # monotonic clock seconds
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    @classmethod
    def with_timeout(cls, seconds: Optional[float], clock: Callable[[], float] = time.monotonic) -> "Context":
        if seconds is None:
            return cls(clock=clock)
        return cls(deadline=clock() + seconds, clock=clock)

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, None if unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self.clock())

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self.clock() >= self.deadline

    def check(self) -> None:
        """
        Raise if the deadline has passed.

        Raises:
            DeadlineExceededError: If no time is left
        """
        if self.expired:
            raise DeadlineExceededError("reconciliation deadline exceeded")

    def bound(self, timeout: float) -> float:
        """Clamp ``timeout`` to the time left."""
        remaining = self.remaining()
        return timeout if remaining is None else min(timeout, remaining)
