"""
Perplexity answer engine.

The backend function already returns hits in the canonical shape, plus an
LLM summary, an overall evidence level and key findings which are surfaced
on the ``SearchResponse``.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, TypedDict

from medisearch.application.search.query_builder import build_provider_query
from medisearch.domain.entities import ProviderId, SearchResponse

from .base import ProviderClient, elapsed_ms, result_from_payload

if TYPE_CHECKING:
    from medisearch.domain.entities import SearchQuery

PERPLEXITY_MODEL = "sonar-pro"
PERPLEXITY_DOMAINS = (
    "pubmed.ncbi.nlm.nih.gov",
    "cochrane.org",
    "nejm.org",
    "jamanetwork.com",
    "thelancet.com",
    "bmj.com",
)


class PerplexityFilters(TypedDict):
    model: str
    maxTokens: int
    temperature: float
    returnCitations: bool
    searchDomainFilter: list[str]


class PerplexityRequest(TypedDict):
    q: str
    filters: PerplexityFilters


class PerplexityClient(ProviderClient):
    provider_id = ProviderId.PERPLEXITY
    label = "Perplexity"
    endpoint = "search-perplexity"

    def build_request(self, query: SearchQuery) -> PerplexityRequest:
        return {
            "q": build_provider_query(query, self.provider_id, self._clock().date()),
            "filters": {
                "model": PERPLEXITY_MODEL,
                "maxTokens": 1000,
                "temperature": 0.2,
                "returnCitations": True,
                "searchDomainFilter": list(PERPLEXITY_DOMAINS),
            },
        }

    async def search(self, query: SearchQuery) -> SearchResponse:
        started = time.perf_counter()
        request = self.build_request(query)
        data: dict[str, Any] = await self._gateway.post(
            self.endpoint,
            dict(request),
            label=self.label,
            include_error_body=True,
        )
        raw_results: list[dict[str, Any]] = data.get("results") or []
        findings = data.get("keyFindings")
        return SearchResponse(
            results=[
                result_from_payload(r, i, provider=self.provider_id, id_prefix="perplexity")
                for i, r in enumerate(raw_results)
            ],
            total_count=int(data.get("totalCount") or len(raw_results)),
            search_time_ms=elapsed_ms(started),
            provider=self.provider_id,
            query=request["q"],
            summary=data.get("summary"),
            evidence_level=data.get("evidenceLevel"),
            key_findings=list(findings) if findings else None,
        )
