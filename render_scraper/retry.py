"""
Retry scheduler: bounded exponential backoff on top of tenacity.

The delay before attempt n (n >= 2) is base_delay * multiplier ** (n - 1);
the first attempt runs immediately. When attempts run out, or the failure is
not retryable, the last failure is re-raised unchanged.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from .policy import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Stateless backoff rules.

    max_attempts is the TOTAL number of tries, not the number of retries.
    The default (4) means: try, then up to 3 retries.
    """

    base_delay: float = 1.0  # seconds
    multiplier: float = 2.0
    max_attempts: int = 4
    is_retryable: Callable[[BaseException], bool] = field(default=is_retryable, compare=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")

    def delay_before(self, attempt: int) -> float:
        if attempt <= 1:
            return 0.0
        return self.base_delay * self.multiplier ** (attempt - 1)

    def _wait(self, retry_state: RetryCallState) -> float:
        # attempt_number is the attempt that just failed
        return self.delay_before(retry_state.attempt_number + 1)


DEFAULT_RETRY_POLICY = RetryPolicy()


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception()
    logger.warning(
        "attempt %d failed (%s), retrying in %.2fs",
        retry_state.attempt_number,
        getattr(error, "kind", type(error).__name__),
        retry_state.next_action.sleep,
        extra={"url": getattr(error, "url", None)},
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_attempt: Callable[[int], None] | None = None,
) -> T:
    """
    Run `operation` until it succeeds, fails fatally, or attempts run out.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        policy: Backoff and eligibility rules
        sleep: Awaitable sleep used between attempts
        on_attempt: Optional callback receiving the 1-based attempt number

    Raises:
        The most recent failure, unchanged.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=policy._wait,
        retry=retry_if_exception(policy.is_retryable),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            if on_attempt:
                on_attempt(attempt.retry_state.attempt_number)
            return await operation()
    raise RuntimeError("Unexpected state in retry loop")  # pragma: no cover
