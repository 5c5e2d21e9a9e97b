"""
Medical query builder.

Turns a structured ``SearchQuery`` into the free-text query handed to a web
or semantic search provider. Clauses are accumulated on an immutable
``QueryClauses`` value and serialized exactly once, so the 150-character cap
is an explicit final encoding step:

    QueryClauses(base)
        .with_terms(specialty)
        .with_terms(content terms[:2])
        .with_terms(format term[:1])
        .with_sites(authority sites[:3])
        .with_date_hint(recency)
        .serialize()

The output is a pure function of the query, the provider and ``today``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import TYPE_CHECKING

from medisearch.domain.entities import ProviderId

if TYPE_CHECKING:
    from collections.abc import Iterable

    from medisearch.domain.entities import AdvancedFilters, SearchQuery

MAX_QUERY_LENGTH = 150
MAX_CONTENT_TERMS = 2
MAX_FORMAT_TERMS = 1
MAX_SITE_TERMS = 3

CONTENT_TYPE_TERMS: dict[str, dict[str, str]] = {
    "research_literature": {
        "studies": "clinical study",
        "trials": "clinical trial",
        "meta-analyses": "meta-analysis",
        "systematic-reviews": "systematic review",
    },
    "clinical_guidelines": {
        "treatment-guidelines": "treatment guidelines",
        "diagnostic-protocols": "diagnostic protocol",
        "best-practices": "best practices",
    },
    "medical_references": {
        "textbooks": "medical textbook",
        "handbooks": "clinical handbook",
        "medical-dictionaries": "medical dictionary",
    },
    "educational_content": {
        "cme-materials": "CME continuing education",
        "case-studies": "case study",
        "learning-modules": "medical education",
    },
    "regulatory_docs": {
        "fda-approvals": "FDA approval",
        "drug-labels": "drug label",
        "safety-communications": "drug safety communication",
    },
    "patient_resources": {
        "patient-education": "patient education",
        "fact-sheets": "patient fact sheet",
        "brochures": "patient brochure",
    },
}

FILE_FORMAT_TERMS = {
    "video": "video lecture medical",
    "audio": "podcast medical education",
    "pdf": "PDF medical document",
    "ppt": "presentation medical slides",
}

GOVERNMENT_SITES = ("cdc.gov", "nih.gov", "fda.gov")
SOCIETY_SITES = {"aha": "heart.org", "acc": "acc.org", "acs": "cancer.org", "acog": "acog.org"}
PUBLISHER_SITES = {
    "nejm": "nejm.org",
    "lancet": "thelancet.com",
    "bmj": "bmj.com",
    "jama": "jamanetwork.com",
}

LEGACY_EVIDENCE_TERMS = {
    "systematic-review": "systematic review",
    "rct": "randomized trial",
    "cohort": "cohort study",
    "case-control": "case control",
    "case-series": "case series",
}

LEGACY_CONTENT_TERMS = {
    "journal-article": "journal article",
    "clinical-guideline": "guidelines",
    "consensus-statement": "consensus",
    "practice-bulletin": "practice bulletin",
}


@dataclass(frozen=True)
class QueryClauses:
    """Immutable accumulation of query clauses."""

    base: str
    terms: tuple[str, ...] = ()
    sites: tuple[str, ...] = ()
    date_hint: str | None = None

    def with_terms(self, terms: Iterable[str], limit: int | None = None) -> QueryClauses:
        selected = [t for t in terms if t]
        if limit is not None:
            selected = selected[:limit]
        if not selected:
            return self
        return replace(self, terms=(*self.terms, *selected))

    def with_sites(self, sites: Iterable[str], limit: int = MAX_SITE_TERMS) -> QueryClauses:
        merged = list(self.sites)
        for site in sites:
            if site not in merged:
                merged.append(site)
        return replace(self, sites=tuple(merged[:limit]))

    def with_date_hint(self, hint: str | None) -> QueryClauses:
        return replace(self, date_hint=hint) if hint else self

    def render(self) -> str:
        parts = [self.base.strip(), *self.terms]
        if self.sites:
            parts.append("(" + " OR ".join(f"site:{s}" for s in self.sites) + ")")
        if self.date_hint:
            parts.append(self.date_hint)
        return " ".join(p for p in parts if p)

    def serialize(self, max_length: int = MAX_QUERY_LENGTH) -> str:
        return truncate_query(self.render(), max_length)


def truncate_query(text: str, max_length: int = MAX_QUERY_LENGTH) -> str:
    """
    Cap ``text`` at ``max_length`` characters without splitting a word.

    If the cut lands mid-word the partial word is dropped by backing off to
    the last whitespace; a single word longer than the cap is hard-cut.
    """
    if len(text) <= max_length:
        return text
    head = text[:max_length]
    if text[max_length].isspace():
        return head.rstrip()
    boundary = head.rfind(" ")
    if boundary > 0:
        return head[:boundary].rstrip()
    return head


def recency_hint(period: str | None, today: date) -> str | None:
    """Coarse date hint for a recency bucket (web search has no date filter)."""
    year = today.year
    match period:
        case "last-30-days" | "3-months":
            return f"recent {year}"
        case "1-year":
            return str(year)
        case "2-years":
            return f"{year - 1} {year}"
        case _:
            return None


def _content_terms(filters: AdvancedFilters) -> list[str]:
    if not filters.content_types:
        return []
    terms: list[str] = []
    for category, mapping in CONTENT_TYPE_TERMS.items():
        for selected in getattr(filters.content_types, category):
            term = mapping.get(selected)
            if term:
                terms.append(term)
    return terms


def _authority_sites(filters: AdvancedFilters) -> list[str]:
    authority = filters.source_authority
    if not authority:
        return []
    sites: list[str] = []
    if authority.government:
        sites.extend(GOVERNMENT_SITES)
    sites.extend(SOCIETY_SITES[s] for s in authority.professional_societies if s in SOCIETY_SITES)
    sites.extend(PUBLISHER_SITES[p] for p in authority.publishers if p in PUBLISHER_SITES)
    return sites


def _legacy_terms(query: SearchQuery) -> list[str]:
    # Only the first entry of each list is used to keep the query short
    terms: list[str] = []
    if query.evidence_level:
        primary = query.evidence_level[0]
        terms.append(LEGACY_EVIDENCE_TERMS.get(primary, primary))
    if query.content_type:
        primary = query.content_type[0]
        terms.append(LEGACY_CONTENT_TERMS.get(primary, primary))
    return terms


def build_clauses(query: SearchQuery, today: date | None = None) -> QueryClauses:
    today = today or date.today()
    clauses = QueryClauses(base=query.query)
    if query.specialty:
        clauses = clauses.with_terms([query.specialty])

    filters = query.advanced_filters
    if filters is None:
        return clauses.with_terms(_legacy_terms(query))

    formats = [FILE_FORMAT_TERMS[f] for f in filters.file_formats if f in FILE_FORMAT_TERMS]
    return (
        clauses.with_terms(_content_terms(filters), limit=MAX_CONTENT_TERMS)
        .with_terms(formats, limit=MAX_FORMAT_TERMS)
        .with_sites(_authority_sites(filters))
        .with_date_hint(recency_hint(filters.recency_period, today))
    )


def build_provider_query(
    query: SearchQuery,
    provider_id: str | None = None,
    today: date | None = None,
) -> str:
    """
    Query text for ``provider_id``.

    The trial registry is searched by condition, so it receives the raw query
    text; every other provider gets the augmented medical query.
    """
    if provider_id == ProviderId.CLINICALTRIALS:
        return query.query.strip()
    return build_clauses(query, today).serialize()
