"""
Result Aggregator - merge, filter and rank per-provider responses.

Pipeline:
    1. Deduplicate by normalized URL, query included (else slugified title)
    2. Weight relevance by provider weight, boost confidence of duplicates
    3. Apply advanced filters (file format, source authority exclude;
       content type only annotates)
    4. Rank by relevance * confidence, ties broken by dedup key
    5. Truncate

Incoming ``SearchResult`` objects are never mutated; every result is copied
before it is merged or annotated.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from medisearch.domain.entities import ResultMetadata, SearchResult

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from medisearch.domain.entities import (
        AdvancedFilters,
        ContentTypeFilters,
        SearchQuery,
        SearchResponse,
        SourceAuthorityFilters,
    )

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 20
DEFAULT_CONFIDENCE = 0.7
DUPLICATE_CONFIDENCE_BOOST = 0.2
UNKNOWN_PROVIDER_WEIGHT = 0.1

_WHITESPACE = re.compile(r"\s+")

# authority_source -> (filter attribute, allowed domains)
AUTHORITY_DOMAINS: dict[str, tuple[str, tuple[str, ...]]] = {
    "government": ("government", ("cdc.gov", "nih.gov", "fda.gov", "who.int")),
    "professional-society": ("professional_societies", ("heart.org", "acc.org", "cancer.org", "acog.org")),
    "academic": ("academic_institutions", ("harvard.edu", "mayoclinic.org", "hopkinsmedicine.org")),
    "publisher": ("publishers", ("nejm.org", "thelancet.com", "bmj.com", "jamanetwork.com")),
    "medical-org": ("medical_organizations", ("uptodate.com", "medscape.com", "cochranelibrary.com")),
}

# content_category -> (filter attribute, {selected value: phrases})
CONTENT_SIGNALS: dict[str, tuple[str, dict[str, tuple[str, ...]]]] = {
    "research": (
        "research_literature",
        {
            "studies": ("study", "research"),
            "trials": ("trial",),
            "meta-analyses": ("meta-analysis", "meta analysis"),
            "systematic-reviews": ("systematic review",),
        },
    ),
    "guideline": (
        "clinical_guidelines",
        {
            "treatment-guidelines": ("guideline",),
            "diagnostic-protocols": ("diagnostic", "protocol"),
            "best-practices": ("best practice",),
        },
    ),
    "reference": (
        "medical_references",
        {
            "textbooks": ("textbook",),
            "handbooks": ("handbook", "manual"),
            "medical-dictionaries": ("dictionary", "definition"),
        },
    ),
    "education": (
        "educational_content",
        {
            "cme-materials": ("cme", "continuing education"),
            "case-studies": ("case study", "case report"),
            "learning-modules": ("education", "learning"),
        },
    ),
    "regulatory": (
        "regulatory_docs",
        {
            "fda-approvals": ("fda approv",),
            "drug-labels": ("label", "prescribing information"),
            "safety-communications": ("safety communication", "warning"),
        },
    ),
    "patient": (
        "patient_resources",
        {
            "patient-education": ("patient education", "patients"),
            "fact-sheets": ("fact sheet",),
            "brochures": ("brochure",),
        },
    ),
}


def normalize_url(url: str) -> str:
    """
    scheme://host/path?query with scheme and host lowercased.

    The query is kept (``watch?v=AAA`` and ``watch?v=BBB`` stay distinct);
    the fragment and a trailing path slash are dropped.
    """
    parts = urlsplit(url.strip())
    if not parts.netloc:
        return url.strip().split("#", 1)[0].lower().rstrip("/")
    path = parts.path.rstrip("/")
    query = f"?{parts.query}" if parts.query else ""
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}{path}{query}"


def dedup_key(result: SearchResult) -> str:
    if result.url and result.url.strip():
        return normalize_url(result.url)
    return _WHITESPACE.sub("-", result.title.strip().lower())


def detect_file_format(result: SearchResult, wanted: str) -> bool:
    url = result.url.lower()
    title = result.title.lower()
    snippet = result.snippet.lower()
    match wanted:
        case "video":
            return "youtube.com" in url or "vimeo.com" in url or "video" in title or "video" in snippet
        case "audio":
            return "podcast" in url or "podcast" in title or "podcast" in snippet or "audio" in snippet
        case "pdf":
            return url.endswith(".pdf") or "pdf" in snippet
        case "ppt":
            return ".ppt" in url or "presentation" in title or "slides" in snippet
        case _:
            # Formats that cannot be sniffed from a hit never exclude it
            return True


def match_authority(url: str, authority: SourceAuthorityFilters) -> tuple[str, str] | None:
    """(authority_source, matched domain) for the first selected category matching ``url``."""
    host = urlsplit(url).netloc.lower() or url.lower()
    for source, (attr, domains) in AUTHORITY_DOMAINS.items():
        if not getattr(authority, attr):
            continue
        for domain in domains:
            if host == domain or host.endswith(f".{domain}"):
                return source, domain
    return None


def match_content_category(text: str, content_types: ContentTypeFilters) -> str | None:
    lowered = text.lower()
    for category, (attr, signals) in CONTENT_SIGNALS.items():
        for selected in getattr(content_types, attr):
            phrases = signals.get(selected, ())
            if any(phrase in lowered for phrase in phrases):
                return category
    return None


class ResultAggregator:
    """
    Merge per-provider responses into one ranked, deduplicated list.

    Usage:
        aggregator = ResultAggregator(registry.weights())
        results = aggregator.aggregate(successful_responses, query)
    """

    def __init__(
        self,
        weights: Mapping[str, float] | None = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        self._weights = dict(weights or {})
        self._max_results = max_results

    def weight_for(self, provider: str) -> float:
        return self._weights.get(str(provider), UNKNOWN_PROVIDER_WEIGHT)

    def aggregate(
        self,
        responses: Iterable[SearchResponse],
        query: SearchQuery | None = None,
    ) -> list[SearchResult]:
        merged = self._merge(responses)
        if query is not None and query.advanced_filters is not None:
            before = len(merged)
            merged = self.apply_advanced_filters(merged, query.advanced_filters)
            logger.debug(f"Advanced filters kept {len(merged)}/{before} results")
        return self.rank(merged)[: self._max_results]

    def _merge(self, responses: Iterable[SearchResponse]) -> dict[str, SearchResult]:
        merged: dict[str, SearchResult] = {}
        for response in responses:
            weight = self.weight_for(response.provider)
            for result in response.results:
                key = dedup_key(result)
                weighted = result.relevance_score * weight
                existing = merged.get(key)
                if existing is None:
                    merged[key] = replace(
                        result,
                        relevance_score=weighted,
                        confidence=result.confidence or DEFAULT_CONFIDENCE,
                        metadata=replace(result.metadata) if result.metadata else None,
                    )
                else:
                    existing.relevance_score = max(existing.relevance_score, weighted)
                    existing.confidence = min((existing.confidence or 0.0) + DUPLICATE_CONFIDENCE_BOOST, 1.0)
        return merged

    def apply_advanced_filters(
        self,
        results: dict[str, SearchResult],
        filters: AdvancedFilters,
    ) -> dict[str, SearchResult]:
        """Exclude on format/authority mismatch; annotate matched attributes in metadata."""
        kept: dict[str, SearchResult] = {}
        authority = filters.source_authority
        for key, result in results.items():
            annotations: dict[str, str] = {}

            if filters.file_formats:
                matched = next((f for f in filters.file_formats if detect_file_format(result, f)), None)
                if matched is None:
                    continue
                annotations["file_format"] = matched

            if authority is not None and authority.any_selected:
                found = match_authority(result.url, authority)
                if found is None:
                    continue
                annotations["authority_source"], annotations["authority_name"] = found

            if filters.content_types is not None and filters.content_types.any_selected:
                category = match_content_category(result.text, filters.content_types)
                if category:
                    annotations["content_category"] = category

            if annotations:
                metadata = result.metadata or ResultMetadata()
                result.metadata = replace(metadata, **annotations)
            kept[key] = result
        return kept

    @staticmethod
    def rank(results: Mapping[str, SearchResult]) -> list[SearchResult]:
        """Descending combined score; equal scores ordered by dedup key."""
        ordered = sorted(
            results.items(),
            key=lambda item: (-(item[1].relevance_score * (item[1].confidence or 0.0)), item[0]),
        )
        return [result for _, result in ordered]
