"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from medisearch.domain.entities import (
    Provider,
    ProviderId,
    ResponseStatus,
    SearchQuery,
    SearchResponse,
    SearchResult,
)

FIXED_NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


# ============================================================
# Fakes
# ============================================================


class FakeProviderClient:
    """
    Scripted stand-in for a provider client.

    ``outcomes`` are consumed one per call (the last one repeats); an
    exception outcome is raised, anything else is returned.
    """

    def __init__(self, provider_id: str, outcomes: list, delay: float = 0.0) -> None:
        self.provider_id = provider_id
        self.calls = 0
        self.queries: list[SearchQuery] = []
        self._outcomes = list(outcomes)
        self._delay = delay

    async def search(self, query: SearchQuery) -> SearchResponse:
        self.calls += 1
        self.queries.append(query)
        if self._delay:
            await asyncio.sleep(self._delay)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


# ============================================================
# Builders
# ============================================================


@pytest.fixture
def make_result():
    """Factory for canonical search results."""

    def _make(
        url: str = "https://example.org/a",
        *,
        title: str = "Result",
        snippet: str = "",
        provider: str = ProviderId.BRAVE,
        relevance: float = 0.9,
        confidence: float | None = 0.8,
        **kwargs,
    ) -> SearchResult:
        return SearchResult(
            id=kwargs.pop("id", f"{provider}-{url}"),
            title=title,
            url=url,
            snippet=snippet,
            source=kwargs.pop("source", "example.org"),
            provider=provider,
            relevance_score=relevance,
            confidence=confidence,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_response():
    """Factory for a single-provider response."""

    def _make(
        provider: str,
        results: list[SearchResult] | None = None,
        *,
        status: ResponseStatus = ResponseStatus.SUCCESS,
        error: str | None = None,
    ) -> SearchResponse:
        results = results or []
        return SearchResponse(
            results=results,
            total_count=len(results),
            search_time_ms=1.0,
            provider=provider,
            query="q",
            status=status,
            error=error,
        )

    return _make


@pytest.fixture
def fake_client():
    """Factory for ``FakeProviderClient``."""
    return FakeProviderClient


@pytest.fixture
def make_provider():
    def _make(provider_id: str = ProviderId.BRAVE, **kwargs) -> Provider:
        return Provider(
            id=ProviderId(provider_id),
            name=kwargs.pop("name", str(provider_id)),
            **kwargs,
        )

    return _make


@pytest.fixture
def no_sleep():
    """Backoff sleep that returns immediately and records requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def query():
    return SearchQuery(query="heart failure")
