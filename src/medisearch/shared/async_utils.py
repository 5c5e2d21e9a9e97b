"""
Async Utilities for provider calls.

Provides:
- RetryPolicy: explicit retry budget and capped exponential backoff
- retry_with_policy: generic retry combinator (tenacity-based)
- gather_settled: wait for every coroutine, keeping input order
- run_with_timeout: hard per-call time budget
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .exceptions import is_retryable_error

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from medisearch.domain.entities.search import Provider

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Retry
# =============================================================================


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry budget with capped exponential backoff.

    ``max_attempts`` counts the first call, so a provider configured with
    ``retry_count=2`` gets a policy of 3 attempts. The delay before retry
    ``n`` (0-based) is ``min(base_delay * 2**n, max_delay)`` seconds.
    """

    max_attempts: int = 1
    base_delay: float = 1.0
    max_delay: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    @classmethod
    def for_provider(cls, provider: Provider) -> RetryPolicy:
        return cls(max_attempts=max(provider.retry_count, 0) + 1)

    def delay_for(self, attempt: int) -> float:
        """Backoff in seconds after the failed 0-based ``attempt``."""
        return min(self.base_delay * (2**attempt), self.max_delay)


def _log_retry(label: str, policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        logger.warning(
            f"[{label}] attempt {state.attempt_number}/{policy.max_attempts} failed: {error} "
            f"(retrying in {delay:.1f}s)"
        )

    return before_sleep


async def retry_with_policy(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    label: str = "operation",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    retryable_check: Callable[[BaseException], bool] = is_retryable_error,
) -> T:
    """
    Run ``operation`` under ``policy``.

    Returns the first successful result. Errors rejected by
    ``retryable_check`` propagate immediately; once the budget is exhausted
    the last error propagates unchanged.

    Example:
        policy = RetryPolicy(max_attempts=3)
        response = await retry_with_policy(lambda: client.search(query), policy)
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(multiplier=policy.base_delay, max=policy.max_delay),
        retry=retry_if_exception(retryable_check),
        sleep=sleep,
        before_sleep=_log_retry(label, policy),
        reraise=True,
    )
    return await retrying(operation)


# =============================================================================
# Parallel execution
# =============================================================================


async def gather_settled(*coros: Awaitable[T]) -> list[T | Exception]:
    """
    Execute coroutines concurrently and wait for all of them to settle.

    Unlike a TaskGroup, a failing coroutine never cancels its siblings.
    Results (or the raised exception) are returned in input order.
    """
    results = await asyncio.gather(*coros, return_exceptions=True)
    settled: list[T | Exception] = []
    for result in results:
        if isinstance(result, BaseException) and not isinstance(result, Exception):
            # CancelledError / KeyboardInterrupt must not be swallowed
            raise result
        settled.append(result)
    return settled


async def run_with_timeout(
    coro: Awaitable[T],
    timeout: float,
    on_timeout: Callable[[], Exception],
) -> T:
    """
    Await ``coro`` for at most ``timeout`` seconds.

    On expiry the underlying call is cancelled and the exception built by
    ``on_timeout`` is raised instead of ``TimeoutError``.
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        raise on_timeout() from e
