"""
Domain Entities

Core business objects for multi-provider medical search.
"""

from __future__ import annotations

from .search import (
    DEFAULT_RESULT_LIMIT,
    AdvancedFilters,
    AggregatedSearchResponse,
    ContentType,
    ContentTypeFilters,
    EvidenceLevel,
    FailedProvider,
    Provider,
    ProviderId,
    ResponseStatus,
    ResultMetadata,
    SearchQuery,
    SearchResponse,
    SearchResult,
    SourceAuthorityFilters,
    TrialFilters,
)

__all__ = [
    # Providers
    "Provider",
    "ProviderId",
    # Query
    "SearchQuery",
    "AdvancedFilters",
    "ContentTypeFilters",
    "SourceAuthorityFilters",
    "TrialFilters",
    "DEFAULT_RESULT_LIMIT",
    # Results
    "SearchResult",
    "ResultMetadata",
    "SearchResponse",
    "ResponseStatus",
    "AggregatedSearchResponse",
    "FailedProvider",
    # Classification vocabulary
    "EvidenceLevel",
    "ContentType",
]
