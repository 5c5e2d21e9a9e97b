"""
Domain Layer - Core Business Objects

Contains:
- entities: Providers, queries, results and responses
"""

from .entities import (
    AdvancedFilters,
    AggregatedSearchResponse,
    FailedProvider,
    Provider,
    ProviderId,
    SearchQuery,
    SearchResponse,
    SearchResult,
)

__all__ = [
    "Provider",
    "ProviderId",
    "SearchQuery",
    "AdvancedFilters",
    "SearchResult",
    "SearchResponse",
    "AggregatedSearchResponse",
    "FailedProvider",
]
