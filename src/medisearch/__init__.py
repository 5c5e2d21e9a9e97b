"""
MediSearch - multi-provider medical literature search orchestration.

Fans a medical query out to several search backends (Brave, Exa,
Perplexity, ClinicalTrials.gov), tolerates partial failure, and merges the
hits into one deduplicated, evidence-annotated ranking.

Usage:
    from medisearch import SearchQuery, create_container

    orchestrator = create_container().orchestrator()
    response = await orchestrator.parallel_search(SearchQuery(query="heart failure"))
"""

from medisearch.application.search import ProviderRegistry, SearchOrchestrator
from medisearch.container import ApplicationContainer, create_container
from medisearch.domain.entities import (
    AggregatedSearchResponse,
    Provider,
    ProviderId,
    SearchQuery,
    SearchResult,
)
from medisearch.shared.exceptions import (
    AllProvidersFailedError,
    AuthenticationError,
    MediSearchError,
    NoProvidersEnabledError,
)

__version__ = "0.1.0"

__all__ = [
    "AggregatedSearchResponse",
    "AllProvidersFailedError",
    "ApplicationContainer",
    "AuthenticationError",
    "MediSearchError",
    "NoProvidersEnabledError",
    "Provider",
    "ProviderId",
    "ProviderRegistry",
    "SearchOrchestrator",
    "SearchQuery",
    "SearchResult",
    "__version__",
    "create_container",
]
