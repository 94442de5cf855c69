"""Error taxonomy for cluster API calls."""

from typing import Optional

from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError as Urllib3HTTPError

TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class ClusterError(Exception):
    """Base error for cluster accessor failures."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFoundError(ClusterError):
    """The requested object does not exist."""


class ConflictError(ClusterError):
    """The write was based on a stale resourceVersion, or the object already exists."""


class TransientError(ClusterError):
    """Network failure, throttling or server-side error; safe to retry."""


def classify(exc: Exception) -> ClusterError:
    """
    Map a client exception onto the accessor error taxonomy.

    Args:
        exc: Exception raised by the kubernetes client

    Returns:
        ClusterError subclass instance wrapping the original exception
    """
    if isinstance(exc, ClusterError):
        return exc
    if isinstance(exc, ApiException):
        message = f"{exc.status} {exc.reason}: {exc.body or ''}".strip()
        if exc.status == 404:
            return NotFoundError(message, exc.status)
        if exc.status == 409:
            return ConflictError(message, exc.status)
        if exc.status in TRANSIENT_STATUS_CODES:
            return TransientError(message, exc.status)
        return ClusterError(message, exc.status)
    if isinstance(exc, (Urllib3HTTPError, ConnectionError, TimeoutError)):
        return TransientError(str(exc))
    return ClusterError(str(exc))


def is_transient(exc: BaseException) -> bool:
    """Retry predicate used by the read paths of the resource managers."""
    if isinstance(exc, TransientError):
        return True
    if isinstance(exc, ApiException):
        return exc.status in TRANSIENT_STATUS_CODES
    return isinstance(exc, (Urllib3HTTPError, ConnectionError, TimeoutError))
