"""Reconciliation errors."""

from typing import Optional


class ReconcileError(Exception):
    """Base error raised by reconciliation actions."""


class DependencyUnavailableError(ReconcileError):
    """A dependent service did not answer within the allowed attempts."""

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class DeadlineExceededError(ReconcileError):
    """The invocation ran out of time."""


class InvalidConfigurationError(ReconcileError):
    """The resource carries a combination of settings that cannot be applied."""


class PrerequisiteMissingError(ReconcileError):
    """A value an earlier action produces is not available yet."""
