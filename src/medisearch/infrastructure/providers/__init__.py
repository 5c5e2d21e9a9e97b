"""
Provider clients.

One client per search backend; ``build_provider_clients`` wires them all to
a shared endpoint gateway, keyed by provider id.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import ProviderClient, extract_domain, result_from_payload
from .brave import BraveClient
from .clinical_trials import ClinicalTrialsClient
from .exa import ExaClient
from .perplexity import PerplexityClient
from .simple_search import SimpleSearchClient

if TYPE_CHECKING:
    from medisearch.infrastructure.http.client import SearchEndpointClient

PROVIDER_CLIENTS: tuple[type[ProviderClient], ...] = (
    BraveClient,
    ExaClient,
    PerplexityClient,
    ClinicalTrialsClient,
)


def build_provider_clients(gateway: SearchEndpointClient) -> dict[str, ProviderClient]:
    return {str(cls.provider_id): cls(gateway) for cls in PROVIDER_CLIENTS}


__all__ = [
    "PROVIDER_CLIENTS",
    "BraveClient",
    "ClinicalTrialsClient",
    "ExaClient",
    "PerplexityClient",
    "ProviderClient",
    "SimpleSearchClient",
    "build_provider_clients",
    "extract_domain",
    "result_from_payload",
]
