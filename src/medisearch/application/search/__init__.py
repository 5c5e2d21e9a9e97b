"""
Multi-provider medical search.

Architecture:
    SearchQuery
        │
        ▼
    ┌──────────────────┐
    │ ProviderRegistry │  ← enabled providers, by priority
    └────────┬─────────┘
             │
    ┌────────┴─────────────┬──────────────┐
    ▼          ▼           ▼              ▼
  Brave       Exa     Perplexity   ClinicalTrials   ← ProviderInvoker
    │          │           │              │            (timeout + retry)
    └──────────┴───────────┴──────────────┘
             │
             ▼
    ┌──────────────────┐
    │ ResultAggregator │  ← dedup, weighting, filters, ranking
    └────────┬─────────┘
             │
             ▼
    AggregatedSearchResponse
"""

from __future__ import annotations

from .classification import (
    classify_content_type,
    classify_evidence_level,
    decaying_relevance,
    extract_trial_specialty,
    map_phase_to_evidence_level,
)
from .invoker import ProviderInvoker
from .orchestrator import SearchOrchestrator
from .provider_registry import DEFAULT_PROVIDERS, ProviderRegistry
from .query_builder import QueryClauses, build_provider_query, truncate_query
from .result_aggregator import ResultAggregator, dedup_key, normalize_url

__all__ = [
    "DEFAULT_PROVIDERS",
    "ProviderInvoker",
    "ProviderRegistry",
    "QueryClauses",
    "ResultAggregator",
    "SearchOrchestrator",
    "build_provider_query",
    "classify_content_type",
    "classify_evidence_level",
    "decaying_relevance",
    "dedup_key",
    "extract_trial_specialty",
    "map_phase_to_evidence_level",
    "normalize_url",
    "truncate_query",
]
