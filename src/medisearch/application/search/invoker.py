"""
Provider Invoker - one provider call under its time budget and retry policy.

    call_provider_with_retry
        └── retry_with_policy (max_attempts = retry_count + 1,
            │                  backoff min(1s * 2**attempt, 5s))
            └── call_provider
                └── run_with_timeout(provider.timeout_ms)
                    └── ProviderClient.search

A timeout cancels only the call it bounds; sibling provider calls in a
fan-out are separate tasks and are never affected.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from medisearch.shared.async_utils import RetryPolicy, retry_with_policy, run_with_timeout
from medisearch.shared.exceptions import ConfigurationError, ErrorContext, ProviderTimeoutError
from medisearch.shared.telemetry import ProviderMetrics

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from medisearch.domain.entities import Provider, SearchQuery, SearchResponse
    from medisearch.infrastructure.providers import ProviderClient

logger = logging.getLogger(__name__)


class ProviderInvoker:
    """
    Dispatch a query to the client registered for a provider.

    Args:
        clients: Provider id -> client
        metrics: Optional per-provider call metrics
        sleep: Backoff sleep, injectable so tests do not wait
        log: Logger for call diagnostics (module logger by default)
    """

    def __init__(
        self,
        clients: Mapping[str, ProviderClient],
        *,
        metrics: ProviderMetrics | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        log: logging.Logger | None = None,
    ) -> None:
        self._clients = dict(clients)
        self._metrics = metrics or ProviderMetrics(enabled=False)
        self._sleep = sleep
        self._logger = log or logger

    @property
    def metrics(self) -> ProviderMetrics:
        return self._metrics

    def client_for(self, provider: Provider) -> ProviderClient:
        client = self._clients.get(str(provider.id))
        if client is None:
            raise ConfigurationError(
                f"Unknown provider: {provider.id}",
                context=ErrorContext(
                    provider=str(provider.id),
                    suggestion=f"Registered clients: {', '.join(sorted(self._clients))}",
                ),
            )
        return client

    async def call_provider(self, provider: Provider, query: SearchQuery) -> SearchResponse:
        """Single attempt bounded by ``provider.timeout_ms``."""
        client = self.client_for(provider)
        started = time.perf_counter()
        try:
            response = await run_with_timeout(
                client.search(query),
                provider.timeout_seconds,
                lambda: ProviderTimeoutError(str(provider.id), provider.timeout_ms),
            )
        except ProviderTimeoutError:
            self._logger.warning(f"[{provider.id}] request timed out after {provider.timeout_ms}ms")
            raise
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            self._logger.warning(f"[{provider.id}] request failed after {elapsed:.0f}ms: {type(e).__name__}: {e}")
            raise

        elapsed = (time.perf_counter() - started) * 1000
        self._logger.debug(
            f"[{provider.id}] {len(response.results)} results (total {response.total_count}) in {elapsed:.0f}ms"
        )
        return response

    async def call_provider_with_retry(self, provider: Provider, query: SearchQuery) -> SearchResponse:
        """
        Call ``provider`` up to ``retry_count + 1`` times.

        Returns the first success; re-raises the last error once the budget
        is exhausted. Non-retryable errors (authentication, configuration)
        are raised after the first attempt.
        """
        policy = RetryPolicy.for_provider(provider)
        attempts = 0

        async def attempt() -> SearchResponse:
            nonlocal attempts
            attempts += 1
            return await self.call_provider(provider, query)

        started = time.perf_counter()
        try:
            response = await retry_with_policy(attempt, policy, label=str(provider.id), sleep=self._sleep)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            self._metrics.record(str(provider.id), elapsed, success=False, attempts=attempts, error=str(e))
            self._logger.error(f"[{provider.id}] all {attempts} attempt(s) failed in {elapsed:.0f}ms: {e}")
            raise

        elapsed = (time.perf_counter() - started) * 1000
        self._metrics.record(str(provider.id), elapsed, success=True, attempts=attempts)
        if attempts > 1:
            self._logger.info(f"[{provider.id}] succeeded on attempt {attempts}/{policy.max_attempts}")
        return response
