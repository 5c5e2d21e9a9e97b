"""
Runtime configuration read from environment variables.

Environment Variables:
    MEDISEARCH_FUNCTIONS_URL: Base URL of the search endpoints
        (default: http://localhost:8888/.netlify/functions)
    MEDISEARCH_SESSION_TOKEN: Bearer token used when no other credential
        provider is wired
    MEDISEARCH_HTTP_TIMEOUT: Transport-level timeout in seconds (default: 60)
    MEDISEARCH_CACHE_TTL: Response cache TTL in seconds, 0 disables (default: 1800)
    MEDISEARCH_CACHE_SIZE: Maximum cached responses (default: 1000)
    MEDISEARCH_MAX_RESULTS: Aggregated result cap (default: 20)
    MEDISEARCH_DISABLED_PROVIDERS: Comma-separated provider ids to disable
    MEDISEARCH_<PROVIDER>_TIMEOUT_MS: Per-provider timeout override
    MEDISEARCH_<PROVIDER>_RETRIES: Per-provider retry count override
    MEDISEARCH_METRICS: Enable per-provider call metrics (1/true/yes)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from medisearch.domain.entities import ProviderId
from medisearch.shared.exceptions import ConfigurationError, ErrorContext

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_FUNCTIONS_URL = "http://localhost:8888/.netlify/functions"
DEFAULT_HTTP_TIMEOUT = 60.0
DEFAULT_CACHE_TTL = 30 * 60.0
DEFAULT_CACHE_SIZE = 1000
DEFAULT_MAX_RESULTS = 20

_TRUTHY = ("1", "true", "yes")


@dataclass(frozen=True)
class SearchSettings:
    functions_url: str = DEFAULT_FUNCTIONS_URL
    session_token: str | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    cache_ttl: float = DEFAULT_CACHE_TTL
    cache_size: int = DEFAULT_CACHE_SIZE
    max_results: int = DEFAULT_MAX_RESULTS
    disabled_providers: frozenset[str] = frozenset()
    timeout_overrides_ms: dict[str, int] = field(default_factory=dict)
    retry_overrides: dict[str, int] = field(default_factory=dict)
    metrics_enabled: bool = False

    @property
    def cache_enabled(self) -> bool:
        return self.cache_ttl > 0 and self.cache_size > 0

    def to_dict(self) -> dict[str, Any]:
        """Flat mapping for ``ApplicationContainer.config.from_dict``."""
        return {
            "functions_url": self.functions_url,
            "session_token": self.session_token,
            "http_timeout": self.http_timeout,
            "cache_ttl": self.cache_ttl,
            "cache_size": self.cache_size,
            "max_results": self.max_results,
            "metrics_enabled": self.metrics_enabled,
        }


N = TypeVar("N", int, float)


def _parse_number(env: Mapping[str, str], name: str, cast: type[N], default: N) -> N:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}",
            context=ErrorContext(input_value=raw, suggestion=f"{name} must be a {cast.__name__}"),
        ) from None
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {raw!r}")
    return value


def _parse_disabled(raw: str) -> frozenset[str]:
    known = {p.value for p in ProviderId}
    disabled = {part.strip().lower() for part in raw.split(",") if part.strip()}
    unknown = disabled - known
    if unknown:
        raise ConfigurationError(
            f"Unknown provider(s) in MEDISEARCH_DISABLED_PROVIDERS: {', '.join(sorted(unknown))}",
            context=ErrorContext(suggestion=f"Known providers: {', '.join(sorted(known))}"),
        )
    return frozenset(disabled)


def load_settings(env: Mapping[str, str] | None = None) -> SearchSettings:
    """Build settings from ``env`` (defaults to ``os.environ``)."""
    env = os.environ if env is None else env

    timeouts: dict[str, int] = {}
    retries: dict[str, int] = {}
    for provider in ProviderId:
        prefix = f"MEDISEARCH_{provider.value.upper()}"
        if env.get(f"{prefix}_TIMEOUT_MS", "").strip():
            timeouts[provider.value] = _parse_number(env, f"{prefix}_TIMEOUT_MS", int, 0)
        if env.get(f"{prefix}_RETRIES", "").strip():
            retries[provider.value] = _parse_number(env, f"{prefix}_RETRIES", int, 0)

    return SearchSettings(
        functions_url=(env.get("MEDISEARCH_FUNCTIONS_URL", "").strip() or DEFAULT_FUNCTIONS_URL).rstrip("/"),
        session_token=env.get("MEDISEARCH_SESSION_TOKEN", "").strip() or None,
        http_timeout=_parse_number(env, "MEDISEARCH_HTTP_TIMEOUT", float, DEFAULT_HTTP_TIMEOUT),
        cache_ttl=_parse_number(env, "MEDISEARCH_CACHE_TTL", float, DEFAULT_CACHE_TTL),
        cache_size=_parse_number(env, "MEDISEARCH_CACHE_SIZE", int, DEFAULT_CACHE_SIZE),
        max_results=_parse_number(env, "MEDISEARCH_MAX_RESULTS", int, DEFAULT_MAX_RESULTS),
        disabled_providers=_parse_disabled(env.get("MEDISEARCH_DISABLED_PROVIDERS", "")),
        timeout_overrides_ms=timeouts,
        retry_overrides=retries,
        metrics_enabled=env.get("MEDISEARCH_METRICS", "").lower() in _TRUTHY,
    )
