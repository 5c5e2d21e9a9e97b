"""
Search Orchestrator - the public entry point for medical literature search.

Three modes:
    search           one call to the consolidated simple-search endpoint,
                     bounded by the first enabled provider's timeout
    parallel_search  fan out to every enabled provider, settle all, merge
    failover_search  try enabled providers in priority order until one works

Per-provider failures never escape ``parallel_search`` unless every provider
failed; they are reported as ``failed_providers`` instead. The orchestrator
keeps no state between calls apart from the optional response cache.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from medisearch.domain.entities import AggregatedSearchResponse, FailedProvider
from medisearch.shared.async_utils import gather_settled, run_with_timeout
from medisearch.shared.exceptions import (
    AllProvidersFailedError,
    ConfigurationError,
    NoProvidersEnabledError,
    ProviderTimeoutError,
)

from .result_aggregator import ResultAggregator

if TYPE_CHECKING:
    from medisearch.domain.entities import Provider, SearchQuery, SearchResponse
    from medisearch.infrastructure.cache import ResponseCache
    from medisearch.infrastructure.providers import SimpleSearchClient

    from .invoker import ProviderInvoker
    from .provider_registry import ProviderRegistry

logger = logging.getLogger(__name__)


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


class SearchOrchestrator:
    """
    Coordinate providers for one logical query.

    Usage:
        orchestrator = container.orchestrator()
        response = await orchestrator.parallel_search(SearchQuery(query="statins"))
        for result in response.results:
            print(result.title, result.relevance_score)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        invoker: ProviderInvoker,
        aggregator: ResultAggregator | None = None,
        *,
        simple_search: SimpleSearchClient | None = None,
        cache: ResponseCache | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._registry = registry
        self._invoker = invoker
        self._aggregator = aggregator or ResultAggregator(registry.weights())
        self._simple_search = simple_search
        self._cache = cache
        self._logger = log or logger

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def _resolve_providers(self, query: SearchQuery) -> list[Provider]:
        providers = self._registry.get_enabled_providers(query.providers or None)
        if not providers:
            raise NoProvidersEnabledError([str(p) for p in query.providers])
        return providers

    # =========================================================================
    # Single consolidated call
    # =========================================================================

    async def search(self, query: SearchQuery) -> AggregatedSearchResponse:
        """
        One call to the consolidated endpoint.

        The endpoint chooses its backend itself; the call is bounded by the
        timeout of the highest-priority enabled provider and is not retried.
        Any failure propagates unchanged.
        """
        providers = self._resolve_providers(query)
        if self._simple_search is None:
            raise ConfigurationError("Simple search endpoint is not configured")

        simple_search = self._simple_search
        first = providers[0]
        started = time.perf_counter()
        response = await run_with_timeout(
            simple_search.search(query),
            first.timeout_seconds,
            lambda: ProviderTimeoutError(simple_search.endpoint, first.timeout_ms),
        )
        self._logger.info(f"Simple search via {response.provider}: {len(response.results)} results")
        return AggregatedSearchResponse(
            results=response.results,
            total_count=response.total_count,
            search_time_ms=(time.perf_counter() - started) * 1000,
            providers=[response.provider],
            query=query.query,
            successful_providers=1,
        )

    # =========================================================================
    # Parallel fan-out
    # =========================================================================

    async def parallel_search(self, query: SearchQuery) -> AggregatedSearchResponse:
        """
        Query every enabled provider concurrently and merge the results.

        With a cache configured, only responses without failed providers
        are stored.

        Raises:
            NoProvidersEnabledError: nothing to call (before any network I/O)
            AllProvidersFailedError: every provider failed
        """
        providers = self._resolve_providers(query)
        if self._cache is None:
            return await self._fan_out(query, providers)
        return await self._cache.get_or_fetch(
            query.cache_key(),
            lambda: self._fan_out(query, providers),
            cacheable=lambda response: not response.failed_providers,
        )

    async def _fan_out(self, query: SearchQuery, providers: list[Provider]) -> AggregatedSearchResponse:
        started = time.perf_counter()
        self._logger.info(f"Parallel search across {', '.join(str(p.id) for p in providers)}")

        outcomes = await gather_settled(*(self._invoker.call_provider_with_retry(p, query) for p in providers))

        successes: list[SearchResponse] = []
        failures: list[FailedProvider] = []
        errors: list[Exception] = []
        for provider, outcome in zip(providers, outcomes, strict=True):
            if isinstance(outcome, Exception):
                failures.append(FailedProvider(str(provider.id), _error_message(outcome)))
                errors.append(outcome)
            elif not outcome.is_success:
                failures.append(FailedProvider(str(provider.id), outcome.error or "Unknown error"))
            else:
                successes.append(outcome)

        if not successes:
            error = AllProvidersFailedError(failures, errors=errors)
            self._logger.error(f"{error} [attempted: {len(providers)}]")
            raise error

        results = self._aggregator.aggregate(successes, query)
        if failures:
            self._logger.warning(
                f"{len(failures)}/{len(providers)} providers failed: "
                + "; ".join(f"{f.provider}: {f.error}" for f in failures)
            )
        return AggregatedSearchResponse(
            results=results,
            total_count=len(results),
            search_time_ms=(time.perf_counter() - started) * 1000,
            providers=[r.provider for r in successes],
            query=query.query,
            successful_providers=len(successes),
            failed_providers=failures,
        )

    # =========================================================================
    # Ordered failover
    # =========================================================================

    async def failover_search(self, query: SearchQuery) -> AggregatedSearchResponse:
        """
        Try enabled providers one at a time, by priority.

        The first provider that succeeds answers the query; earlier failures
        are reported in ``failed_providers``. When all fail, the last error
        propagates.
        """
        providers = self._resolve_providers(query)
        started = time.perf_counter()
        failures: list[FailedProvider] = []
        last_error: Exception | None = None

        for provider in providers:
            try:
                response = await self._invoker.call_provider_with_retry(provider, query)
            except Exception as e:
                failures.append(FailedProvider(str(provider.id), _error_message(e)))
                last_error = e
                self._logger.warning(f"Failover: {provider.id} failed, trying next provider")
                continue
            if not response.is_success:
                failures.append(FailedProvider(str(provider.id), response.error or "Unknown error"))
                last_error = None
                continue

            results = self._aggregator.aggregate([response], query)
            return AggregatedSearchResponse(
                results=results,
                total_count=len(results),
                search_time_ms=(time.perf_counter() - started) * 1000,
                providers=[response.provider],
                query=query.query,
                successful_providers=1,
                failed_providers=failures,
            )

        if last_error is not None:
            raise last_error
        raise AllProvidersFailedError(failures)
