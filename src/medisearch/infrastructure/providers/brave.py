"""Brave Search web results, biased toward medical literature by the query builder."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, TypedDict

from medisearch.application.search.classification import (
    classify_content_type,
    classify_evidence_level,
    decaying_relevance,
)
from medisearch.application.search.query_builder import build_provider_query
from medisearch.domain.entities import ProviderId, SearchResponse, SearchResult

from .base import ProviderClient, elapsed_ms, extract_domain

if TYPE_CHECKING:
    from medisearch.domain.entities import SearchQuery


class BraveFilters(TypedDict):
    limit: int
    language: str
    country: str
    safesearch: str
    recency: str | None


class BraveRequest(TypedDict):
    q: str
    filters: BraveFilters


class BraveResult(TypedDict, total=False):
    title: str
    url: str
    description: str
    age: str


BRAVE_CONFIDENCE = 0.8


def normalize_brave_result(raw: BraveResult, index: int) -> SearchResult:
    title = raw.get("title") or ""
    url = raw.get("url") or ""
    description = raw.get("description") or ""
    text = f"{title} {description}"
    return SearchResult(
        id=f"brave-{index}",
        title=title,
        url=url,
        snippet=description,
        source=extract_domain(url),
        provider=ProviderId.BRAVE,
        relevance_score=decaying_relevance(index),
        confidence=BRAVE_CONFIDENCE,
        publication_date=raw.get("age") or None,
        evidence_level=classify_evidence_level(text),
        content_type=classify_content_type(text),
    )


class BraveClient(ProviderClient):
    provider_id = ProviderId.BRAVE
    label = "Brave"
    endpoint = "search-brave"

    def build_request(self, query: SearchQuery) -> BraveRequest:
        return {
            "q": build_provider_query(query, self.provider_id, self._clock().date()),
            "filters": {
                "limit": query.result_limit,
                "language": "en",
                "country": "US",
                "safesearch": "moderate",
                "recency": query.recency,
            },
        }

    async def search(self, query: SearchQuery) -> SearchResponse:
        started = time.perf_counter()
        request = self.build_request(query)
        data: dict[str, Any] = await self._gateway.post(self.endpoint, dict(request), label=self.label)
        raw_results: list[BraveResult] = data.get("results") or []
        return SearchResponse(
            results=[normalize_brave_result(r, i) for i, r in enumerate(raw_results)],
            total_count=int(data.get("totalCount") or 0),
            search_time_ms=elapsed_ms(started),
            provider=self.provider_id,
            query=request["q"],
        )
