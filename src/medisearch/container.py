"""
Application DI Container (dependency-injector).

Centralizes service creation and lifecycle management.

Usage::

    from medisearch.container import create_container

    container = create_container()          # settings from the environment
    orchestrator = container.orchestrator()
    response = await orchestrator.parallel_search(SearchQuery(query="statins"))

    # In tests - override any provider:
    container.invoker.override(providers.Object(fake_invoker))
"""

from __future__ import annotations

import logging

from dependency_injector import containers, providers

from medisearch.application.search import (
    ProviderInvoker,
    ProviderRegistry,
    ResultAggregator,
    SearchOrchestrator,
)
from medisearch.config import SearchSettings, load_settings
from medisearch.infrastructure.auth import CredentialProvider, EnvCredentialProvider, StaticCredentialProvider
from medisearch.infrastructure.cache import ResponseCache
from medisearch.infrastructure.http import SearchEndpointClient
from medisearch.infrastructure.providers import SimpleSearchClient, build_provider_clients
from medisearch.shared.telemetry import ProviderMetrics

logger = logging.getLogger(__name__)


def _create_credentials(token: str | None) -> CredentialProvider:
    """Fixed token when configured, otherwise read the environment per request."""
    if token:
        return StaticCredentialProvider(token)
    return EnvCredentialProvider()


def _create_aggregator(registry: ProviderRegistry, max_results: int) -> ResultAggregator:
    return ResultAggregator(registry.weights(), max_results=max_results)


def _create_cache(ttl: float, max_size: int) -> ResponseCache | None:
    if ttl <= 0 or max_size <= 0:
        logger.info("Response cache disabled")
        return None
    return ResponseCache(max_size=max_size, ttl=ttl)


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for the search orchestrator.

    Manages creation and lifecycle of all core services:
    - ``gateway``: authenticated httpx client for the search endpoints
    - ``provider_clients``: one client per search backend
    - ``registry``: configured providers with environment overrides
    - ``invoker``: timeout + retry around each provider call
    - ``orchestrator``: search / parallel_search / failover_search
    """

    config = providers.Configuration()

    settings = providers.Singleton(load_settings)

    credentials = providers.Singleton(_create_credentials, token=config.session_token)

    gateway = providers.Singleton(
        SearchEndpointClient,
        base_url=config.functions_url,
        credentials=credentials,
        timeout=config.http_timeout,
    )

    provider_clients = providers.Singleton(build_provider_clients, gateway=gateway)

    simple_search = providers.Singleton(SimpleSearchClient, gateway=gateway)

    registry = providers.Singleton(ProviderRegistry.from_settings, settings=settings)

    metrics = providers.Singleton(ProviderMetrics, enabled=config.metrics_enabled)

    invoker = providers.Singleton(ProviderInvoker, clients=provider_clients, metrics=metrics)

    aggregator = providers.Singleton(_create_aggregator, registry=registry, max_results=config.max_results)

    cache = providers.Singleton(_create_cache, ttl=config.cache_ttl, max_size=config.cache_size)

    orchestrator = providers.Singleton(
        SearchOrchestrator,
        registry=registry,
        invoker=invoker,
        aggregator=aggregator,
        simple_search=simple_search,
        cache=cache,
    )


def create_container(settings: SearchSettings | None = None) -> ApplicationContainer:
    """Container configured from ``settings`` (loaded from the environment by default)."""
    settings = settings or load_settings()
    container = ApplicationContainer()
    container.settings.override(providers.Object(settings))
    container.config.from_dict(settings.to_dict())
    return container


__all__ = ["ApplicationContainer", "create_container"]
