"""Exa semantic search restricted to high-impact medical domains."""

from __future__ import annotations

import time
from datetime import timedelta
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

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

EXA_DOMAINS = (
    "pubmed.ncbi.nlm.nih.gov",
    "nejm.org",
    "jamanetwork.com",
    "thelancet.com",
    "nature.com",
    "bmj.com",
    "acc.org",
    "heart.org",
    "acog.org",
)

EXA_CONFIDENCE = 0.85


class ExaRequest(TypedDict):
    query: str
    num_results: int
    include_text: bool
    include_domains: list[str]
    start_crawl_date: NotRequired[str]


class ExaResult(TypedDict, total=False):
    title: str
    url: str
    text: str
    snippet: str
    score: float
    publishedDate: str


def normalize_exa_result(raw: ExaResult, index: int) -> SearchResult:
    title = raw.get("title") or ""
    url = raw.get("url") or ""
    snippet = raw.get("text") or raw.get("snippet") or ""
    text = f"{title} {snippet}"
    return SearchResult(
        id=f"exa-{index}",
        title=title,
        url=url,
        snippet=snippet,
        source=extract_domain(url),
        provider=ProviderId.EXA,
        relevance_score=float(raw.get("score") or decaying_relevance(index)),
        confidence=EXA_CONFIDENCE,
        publication_date=raw.get("publishedDate") or None,
        evidence_level=classify_evidence_level(text),
        content_type=classify_content_type(text),
    )


class ExaClient(ProviderClient):
    provider_id = ProviderId.EXA
    label = "Exa"
    endpoint = "search-exa"

    def build_request(self, query: SearchQuery) -> ExaRequest:
        now = self._clock()
        request: ExaRequest = {
            "query": build_provider_query(query, self.provider_id, now.date()),
            "num_results": query.result_limit,
            "include_text": True,
            "include_domains": list(EXA_DOMAINS),
        }
        if query.recency == "last-year":
            request["start_crawl_date"] = (now - timedelta(days=365)).isoformat()
        return request

    async def search(self, query: SearchQuery) -> SearchResponse:
        started = time.perf_counter()
        request = self.build_request(query)
        data: dict[str, Any] = await self._gateway.post(self.endpoint, dict(request), label=self.label)
        raw_results: list[ExaResult] = data.get("results") or []
        return SearchResponse(
            results=[normalize_exa_result(r, i) for i, r in enumerate(raw_results)],
            total_count=int(data.get("totalCount") or len(raw_results)),
            search_time_ms=elapsed_ms(started),
            provider=self.provider_id,
            query=request["query"],
        )
