"""Outcome of one action and of one pipeline run."""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional


class ResultKind(str, Enum):
    """Discriminator of Result."""

    CONTINUE = "continue"
    STATUS_CHANGED = "status_changed"
    REQUEUE = "requeue"
    FAILED = "failed"
    CONVERGED = "converged"


@dataclass(frozen=True)
class Result:
    """
    What an action did and how the controller loop should proceed.

    ``CONTINUE`` lets the pipeline move on to the next action. Every other
    kind ends the invocation. ``CONVERGED`` is only produced by the pipeline
    itself when no action applied.
    """

    kind: ResultKind
    requeue_after: Optional[timedelta] = None
    error: Optional[BaseException] = None

    @classmethod
    def continue_(cls) -> "Result":
        return cls(ResultKind.CONTINUE)

    @classmethod
    def status_changed(cls) -> "Result":
        return cls(ResultKind.STATUS_CHANGED)

    @classmethod
    def requeue(cls, after: timedelta | float) -> "Result":
        if not isinstance(after, timedelta):
            after = timedelta(seconds=after)
        return cls(ResultKind.REQUEUE, requeue_after=after)

    @classmethod
    def failed(cls, error: BaseException) -> "Result":
        return cls(ResultKind.FAILED, error=error)

    @classmethod
    def converged(cls) -> "Result":
        return cls(ResultKind.CONVERGED)

    @property
    def is_continue(self) -> bool:
        return self.kind == ResultKind.CONTINUE

    @property
    def is_failed(self) -> bool:
        return self.kind == ResultKind.FAILED

    def __str__(self) -> str:
        if self.kind == ResultKind.REQUEUE:
            return f"requeue after {self.requeue_after.total_seconds():.1f}s"
        if self.kind == ResultKind.FAILED:
            return f"failed: {self.error}"
        return self.kind.value
