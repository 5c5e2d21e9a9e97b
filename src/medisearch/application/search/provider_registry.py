"""
Provider Registry - static configuration of the search backends.

The registry is read-only during a search call; providers are configuration,
never created or destroyed per request.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from medisearch.domain.entities import Provider, ProviderId

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from medisearch.config import SearchSettings

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS: tuple[Provider, ...] = (
    Provider(
        id=ProviderId.BRAVE,
        name="Brave Search",
        priority=1,
        timeout_ms=8_000,
        retry_count=2,
        weight=0.3,
    ),
    Provider(
        id=ProviderId.EXA,
        name="Exa AI",
        priority=2,
        timeout_ms=10_000,
        retry_count=1,
        weight=0.25,
    ),
    Provider(
        id=ProviderId.PERPLEXITY,
        name="Perplexity AI",
        priority=3,
        timeout_ms=30_000,
        retry_count=1,
        weight=0.2,
    ),
    Provider(
        id=ProviderId.CLINICALTRIALS,
        name="ClinicalTrials.gov",
        priority=4,
        timeout_ms=15_000,
        retry_count=2,
        weight=0.25,
    ),
)


class ProviderRegistry:
    """
    Ordered collection of configured providers.

    Usage:
        registry = ProviderRegistry()
        for provider in registry.get_enabled_providers(["brave", "exa"]):
            ...
    """

    def __init__(self, providers: Iterable[Provider] | None = None) -> None:
        self._providers: tuple[Provider, ...] = tuple(DEFAULT_PROVIDERS if providers is None else providers)

    @property
    def providers(self) -> tuple[Provider, ...]:
        return self._providers

    def get(self, provider_id: str) -> Provider | None:
        for provider in self._providers:
            if provider.id == provider_id:
                return provider
        return None

    def get_enabled_providers(self, requested_ids: Sequence[str] | None = None) -> list[Provider]:
        """
        Enabled providers, optionally restricted to ``requested_ids``.

        Sorted ascending by priority; ``sorted`` is stable so equal priorities
        keep registration order.
        """
        providers = [p for p in self._providers if p.enabled]
        if requested_ids:
            wanted = {str(pid) for pid in requested_ids}
            providers = [p for p in providers if p.id in wanted]
        return sorted(providers, key=lambda p: p.priority)

    def weights(self) -> dict[str, float]:
        """Aggregation weight per configured provider, enabled or not."""
        return {str(p.id): p.weight for p in self._providers}

    @classmethod
    def from_settings(cls, settings: SearchSettings, base: Iterable[Provider] | None = None) -> ProviderRegistry:
        """Apply environment overrides (disabled ids, timeouts, retries) to ``base``."""
        providers: list[Provider] = []
        for provider in DEFAULT_PROVIDERS if base is None else base:
            key = str(provider.id)
            updated = provider
            if key in settings.disabled_providers:
                updated = replace(updated, enabled=False)
            if key in settings.timeout_overrides_ms:
                updated = replace(updated, timeout_ms=settings.timeout_overrides_ms[key])
            if key in settings.retry_overrides:
                updated = replace(updated, retry_count=settings.retry_overrides[key])
            if updated != provider:
                logger.info(
                    f"Provider {key} configured: enabled={updated.enabled}, "
                    f"timeout={updated.timeout_ms}ms, retries={updated.retry_count}"
                )
            providers.append(updated)
        return cls(providers)
