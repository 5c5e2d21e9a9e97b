"""
Base Provider Client - shared plumbing for the per-provider clients.

Each concrete client owns exactly two things:
- the raw request/response shape of its endpoint (``TypedDict``s)
- one normalization function mapping a raw hit onto ``SearchResult``

Everything else (authentication, transport errors, envelope unwrapping) is
done by ``SearchEndpointClient``; time budgets and retries by the invoker.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar
from urllib.parse import urlsplit

from medisearch.application.search.classification import (
    classify_content_type,
    classify_evidence_level,
    decaying_relevance,
)
from medisearch.domain.entities import ResultMetadata, SearchResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from medisearch.domain.entities import ProviderId, SearchQuery, SearchResponse
    from medisearch.infrastructure.http.client import SearchEndpointClient


def utc_now() -> datetime:
    return datetime.now(UTC)


def extract_domain(url: str) -> str:
    """Hostname of ``url``, or ``url`` itself when it has none."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return url
    return host or url


def elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _float_or_none(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def result_from_payload(
    item: dict[str, Any],
    index: int,
    *,
    provider: str,
    id_prefix: str,
    default_confidence: float = 0.8,
    classify_missing: bool = False,
) -> SearchResult:
    """
    Build a ``SearchResult`` from a hit that is already in the canonical
    (camelCase) shape, filling defaults for missing fields.

    Falsy scores fall back to the decaying baseline, matching providers that
    report ``0`` for "unscored".
    """
    url = item.get("url") or ""
    title = item.get("title") or ""
    snippet = item.get("snippet") or item.get("description") or ""
    text = f"{title} {snippet}"

    evidence = item.get("evidenceLevel") or item.get("evidence_level")
    content_type = item.get("contentType") or item.get("content_type")
    if classify_missing:
        evidence = evidence or classify_evidence_level(text)
        content_type = content_type or classify_content_type(text)

    metadata = item.get("metadata")
    return SearchResult(
        id=str(item.get("id") or f"{id_prefix}-{index}"),
        title=title,
        url=url,
        snippet=snippet,
        source=item.get("source") or extract_domain(url),
        provider=item.get("provider") or provider,
        relevance_score=_float_or_none(item.get("relevanceScore") or item.get("relevance_score"))
        or decaying_relevance(index),
        confidence=_float_or_none(item.get("confidence")) or default_confidence,
        evidence_level=evidence,
        content_type=content_type,
        publication_date=item.get("publicationDate") or item.get("publication_date"),
        specialty=item.get("specialty"),
        metadata=ResultMetadata.from_dict(metadata) if isinstance(metadata, dict) else None,
    )


class ProviderClient(ABC):
    """
    One search backend behind the endpoint gateway.

    Subclasses set ``provider_id``, ``label`` (used in error messages) and
    ``endpoint``, and implement ``search``.
    """

    provider_id: ClassVar[ProviderId]
    label: ClassVar[str]
    endpoint: ClassVar[str]

    def __init__(
        self,
        gateway: SearchEndpointClient,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._gateway = gateway
        self._clock = clock

    @abstractmethod
    async def search(self, query: SearchQuery) -> SearchResponse:
        """Run ``query`` against this provider and normalize the hits."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(endpoint={self.endpoint!r})"
