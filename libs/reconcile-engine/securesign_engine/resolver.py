"""Bounded-retry resolution of values published by dependent services."""

import logging
import time
from typing import Callable, Optional

import httpx
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from .context import Context
from .errors import DependencyUnavailableError

logger = logging.getLogger(__name__)


class UnexpectedResponseError(Exception):
    """The dependency answered with a non-success status."""

    def __init__(self, url: str, status_code: int):
        super().__init__(f"GET {url} returned {status_code}")
        self.url = url
        self.status_code = status_code


class DependencyResolver:
    """
    Fetches a value that only exists once a dependent service is running,
    such as a public key the service generates at startup.

    Failures are retried with linear backoff (attempt number x base delay)
    up to a fixed number of attempts. The retries only cover startup
    races within one invocation; longer outages surface as
    ``DependencyUnavailableError`` and are rescheduled by the controller.
    """

    def __init__(
        self,
        attempts: int = 4,
        base_delay: float = 1.0,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize dependency resolver.

        Args:
            attempts: Maximum number of requests per resolution
            base_delay: Backoff unit in seconds
            timeout: Per-request timeout in seconds
            transport: httpx transport, replaced in tests
            sleep: Sleep function used between attempts
        """
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.base_delay = base_delay
        self.timeout = timeout
        self.transport = transport
        self.sleep = sleep

    def _get(self, ctx: Context, url: str) -> bytes:
        ctx.check()
        with httpx.Client(timeout=ctx.bound(self.timeout), transport=self.transport) as client:
            response = client.get(url)
        if response.status_code != 200:
            raise UnexpectedResponseError(url, response.status_code)
        return response.content

    def fetch(self, ctx: Context, url: str) -> bytes:
        """
        GET ``url`` until it answers 200 or the attempts run out.

        Args:
            ctx: Invocation context; no attempt is started past its deadline
            url: Endpoint publishing the value

        Returns:
            Raw response body

        Raises:
            DependencyUnavailableError: If every attempt failed
        """

        def deadline_passed(retry_state: RetryCallState) -> bool:
            return ctx.expired

        def log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                f"Attempt {retry_state.attempt_number}/{self.attempts} for {url} failed: "
                f"{retry_state.outcome.exception()}; retrying in {retry_state.next_action.sleep:.1f}s"
            )

        retrying = Retrying(
            stop=stop_after_attempt(self.attempts) | deadline_passed,
            wait=wait_incrementing(start=self.base_delay, increment=self.base_delay),
            retry=retry_if_exception_type((httpx.HTTPError, UnexpectedResponseError)),
            sleep=self.sleep,
            before_sleep=log_retry,
        )
        try:
            return retrying(self._get, ctx, url)
        except RetryError as e:
            attempt = e.last_attempt
            raise DependencyUnavailableError(
                f"{url} unavailable after {attempt.attempt_number} attempts: {attempt.exception()}",
                attempts=attempt.attempt_number,
                last_error=attempt.exception(),
            ) from attempt.exception()
