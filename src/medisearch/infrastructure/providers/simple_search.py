"""
Consolidated simple-search endpoint.

A single server-side function that picks a backend itself and reports which
one answered in its ``provider`` field.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from medisearch.domain.entities import ProviderId, SearchResponse

from .base import elapsed_ms, result_from_payload

if TYPE_CHECKING:
    from medisearch.domain.entities import SearchQuery
    from medisearch.infrastructure.http.client import SearchEndpointClient

SIMPLE_SEARCH_CONFIDENCE = 0.8
DEFAULT_PROVIDER = ProviderId.BRAVE


class SimpleSearchClient:
    label = "Simple search"
    endpoint = "simple-search"

    def __init__(self, gateway: SearchEndpointClient) -> None:
        self._gateway = gateway

    async def search(self, query: SearchQuery) -> SearchResponse:
        started = time.perf_counter()
        data: dict[str, Any] = await self._gateway.get(
            self.endpoint,
            {"q": query.query, "limit": query.result_limit},
            label=self.label,
        )
        provider = data.get("provider") or DEFAULT_PROVIDER
        raw_results: list[dict[str, Any]] = data.get("results") or []
        return SearchResponse(
            results=[
                result_from_payload(
                    r,
                    i,
                    provider=provider,
                    id_prefix="orchestrator",
                    default_confidence=SIMPLE_SEARCH_CONFIDENCE,
                    classify_missing=True,
                )
                for i, r in enumerate(raw_results)
            ],
            total_count=int(data.get("totalCount") or 0),
            search_time_ms=elapsed_ms(started),
            provider=provider,
            query=query.query,
        )
