"""Classified retry policy for crawl fetches.

Every failed fetch is classified as an HTTP status failure, a timeout or
anything else. The class picks the wait before the next attempt from a
configured table:

    http_<status>  ->  table["http_429"], table["http_503"], ...
    timeout        ->  table["timeout"]
    anything else  ->  table["other"]

Missing keys fall back to ``other``. Once ``max_retries`` retries have
failed the policy gives up and returns an unresolved outcome instead of
raising, so callers can record the item as unknown and carry on.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
)

from solvecrawl.config.models.crawl_settings import CrawlSettings
from solvecrawl.services.models import RetryOutcome
from solvecrawl.shared.constants import CrawlDefaults, RetryWaits
from solvecrawl.shared.errors import (
    ErrorCode,
    ErrorContext,
    FetchTimeoutError,
    HttpStatusError,
    InfrastructureError,
)
from solvecrawl.shared.logging import log_operation_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


class FailureKind(str, Enum):
    """Failure classes understood by the wait table."""

    HTTP_STATUS = "http_status"
    TIMEOUT = "timeout"
    OTHER = "other"


@dataclass(frozen=True)
class Failure:
    """A classified failure; ``status`` is set only for HTTP_STATUS."""

    kind: FailureKind
    status: int | None = None

    @property
    def wait_key(self) -> str:
        if self.kind is FailureKind.HTTP_STATUS:
            return f"{RetryWaits.HTTP_KEY_PREFIX}{self.status}"
        if self.kind is FailureKind.TIMEOUT:
            return RetryWaits.TIMEOUT_KEY
        return RetryWaits.OTHER_KEY

    def describe(self) -> str:
        if self.kind is FailureKind.HTTP_STATUS:
            return f"HTTP {self.status}"
        return self.kind.value


def classify_failure(error: BaseException | None) -> Failure:
    """Map an exception raised by a fetch onto a failure class."""
    if isinstance(error, HttpStatusError):
        return Failure(FailureKind.HTTP_STATUS, error.status_code)
    if isinstance(error, (FetchTimeoutError, asyncio.TimeoutError, TimeoutError)):
        return Failure(FailureKind.TIMEOUT)
    return Failure(FailureKind.OTHER)


class RetryPolicy:
    """Run async operations with classified waits between attempts.

    Args:
        max_retries: Retries after the first attempt; total attempts is
            ``max_retries + 1``
        waits: Wait table in seconds keyed by ``other``, ``timeout`` and
            ``http_<status>``
        sleep: Coroutine used to wait, replaceable in tests
    """

    def __init__(
        self,
        max_retries: int = CrawlDefaults.MAX_RETRIES,
        waits: dict[str, float] | None = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            msg = f"max_retries must be non-negative, got {max_retries}"
            raise ValueError(msg)

        self.max_retries = max_retries
        self.waits = dict(RetryWaits.DEFAULTS if waits is None else waits)
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: CrawlSettings,
        *,
        sleep: SleepFunc = asyncio.sleep,
    ) -> RetryPolicy:
        return cls(settings.max_retries, settings.retry_waits, sleep=sleep)

    def wait_for(self, failure: Failure) -> float:
        """Seconds to wait after ``failure`` before the next attempt."""
        fallback = self.waits.get(RetryWaits.OTHER_KEY, 0.0)
        return float(self.waits.get(failure.wait_key, fallback))

    def _wait(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        return self.wait_for(classify_failure(error))

    def _report_retry(self, label: str, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        failure = classify_failure(error)
        wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "Retry %d/%d for %s after %s (%s), waiting %.1fs",
            retry_state.attempt_number,
            self.max_retries,
            label,
            failure.describe(),
            error,
            wait,
        )

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str,
    ) -> RetryOutcome[T]:
        """Run ``operation`` until it succeeds or the retries run out.

        Args:
            operation: Zero-argument coroutine function performing one attempt
            label: Human-readable name of what is fetched, used in logs

        Returns:
            RetryOutcome with ``resolved`` False when every attempt failed

        Raises:
            asyncio.CancelledError: Cancellation is never retried
        """
        attempts = 0

        async def attempt() -> T:
            nonlocal attempts
            attempts += 1
            return await operation()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._wait,
            retry=retry_if_exception_type(Exception),
            before_sleep=lambda state: self._report_retry(label, state),
            sleep=self._sleep,
        )

        try:
            value = await retrying(attempt)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            error = InfrastructureError(
                code=ErrorCode.CRAWL_FAILED,
                message=f"Failed to crawl {label}!",
                context=ErrorContext(
                    operation="retry_policy_run",
                    additional_data={
                        "label": label,
                        "attempts": attempts,
                        "last_failure": classify_failure(last_error).describe(),
                    },
                ),
            )
            log_operation_error(logger=logger, error=error)
            return RetryOutcome(
                resolved=False,
                attempts=attempts,
                last_error=last_error,
            )

        return RetryOutcome(resolved=True, value=value, attempts=attempts)
