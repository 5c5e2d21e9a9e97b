"""
Search entities - the canonical data model shared by every layer.

Architecture Decision:
    Provider payloads differ wildly (Brave, Exa, Perplexity, ClinicalTrials.gov).
    Each provider client maps its raw payload into ``SearchResult`` before
    anything else sees it, so aggregation and ranking only ever deal with
    these dataclasses.

    ``from_dict`` parsers accept the camelCase wire format used by the web
    front-end; ``to_dict`` serializers emit snake_case, like the rest of the
    package.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any


class ProviderId(StrEnum):
    """Known search backends."""

    BRAVE = "brave"
    EXA = "exa"
    PERPLEXITY = "perplexity"
    CLINICALTRIALS = "clinicaltrials"


class ResponseStatus(StrEnum):
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class EvidenceLevel(StrEnum):
    """Coarse evidence classification inferred from text or trial phase."""

    SYSTEMATIC_REVIEW = "systematic-review"
    RCT = "rct"
    COHORT = "cohort"
    CASE_CONTROL = "case-control"
    CASE_SERIES = "case-series"
    # Trial-phase derived levels
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    OTHER = "other"


class ContentType(StrEnum):
    CLINICAL_GUIDELINE = "clinical-guideline"
    CONSENSUS_STATEMENT = "consensus-statement"
    PRACTICE_BULLETIN = "practice-bulletin"
    JOURNAL_ARTICLE = "journal-article"
    CLINICAL_TRIAL = "clinical-trial"
    OTHER = "other"


def _strs(value: Any) -> tuple[str, ...]:
    """Coerce an optional list-ish value into a tuple of strings."""
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key (camelCase or snake_case)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# =============================================================================
# Provider
# =============================================================================


@dataclass(frozen=True)
class Provider:
    """
    One search backend and its call policy.

    Attributes:
        priority: Lower is tried first; ties keep registration order
        timeout_ms: Hard budget for a single attempt
        retry_count: Additional attempts after the first
        weight: Multiplier applied to relevance during aggregation (0-1)
    """

    id: ProviderId
    name: str
    enabled: bool = True
    priority: int = 1
    timeout_ms: int = 10_000
    retry_count: int = 0
    weight: float = 0.25

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Provider:
        return cls(
            id=ProviderId(data["id"]),
            name=data.get("name", data["id"]),
            enabled=bool(data.get("enabled", True)),
            priority=int(data.get("priority", 1)),
            timeout_ms=int(_pick(data, "timeoutMs", "timeout_ms", "timeout", default=10_000)),
            retry_count=int(_pick(data, "retryCount", "retry_count", default=0)),
            weight=float(data.get("weight", 0.25)),
        )


# =============================================================================
# Filters
# =============================================================================


@dataclass(frozen=True)
class ContentTypeFilters:
    research_literature: tuple[str, ...] = ()  # studies, trials, meta-analyses, systematic-reviews
    clinical_guidelines: tuple[str, ...] = ()  # treatment-guidelines, diagnostic-protocols, best-practices
    medical_references: tuple[str, ...] = ()  # textbooks, handbooks, medical-dictionaries
    educational_content: tuple[str, ...] = ()  # cme-materials, case-studies, learning-modules
    regulatory_docs: tuple[str, ...] = ()  # fda-approvals, drug-labels, safety-communications
    patient_resources: tuple[str, ...] = ()  # patient-education, fact-sheets, brochures

    @property
    def any_selected(self) -> bool:
        return any(
            (
                self.research_literature,
                self.clinical_guidelines,
                self.medical_references,
                self.educational_content,
                self.regulatory_docs,
                self.patient_resources,
            )
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentTypeFilters:
        return cls(
            research_literature=_strs(_pick(data, "researchLiterature", "research_literature")),
            clinical_guidelines=_strs(_pick(data, "clinicalGuidelines", "clinical_guidelines")),
            medical_references=_strs(_pick(data, "medicalReferences", "medical_references")),
            educational_content=_strs(_pick(data, "educationalContent", "educational_content")),
            regulatory_docs=_strs(_pick(data, "regulatoryDocs", "regulatory_docs")),
            patient_resources=_strs(_pick(data, "patientResources", "patient_resources")),
        )


@dataclass(frozen=True)
class SourceAuthorityFilters:
    government: tuple[str, ...] = ()  # cdc, fda, nih, who
    professional_societies: tuple[str, ...] = ()  # aha, acc, acs, asco, acp
    academic_institutions: tuple[str, ...] = ()  # harvard, mayo-clinic, johns-hopkins
    publishers: tuple[str, ...] = ()  # nejm, lancet, bmj, jama
    medical_organizations: tuple[str, ...] = ()  # uptodate, medscape, cochrane

    @property
    def any_selected(self) -> bool:
        return any(
            (
                self.government,
                self.professional_societies,
                self.academic_institutions,
                self.publishers,
                self.medical_organizations,
            )
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceAuthorityFilters:
        return cls(
            government=_strs(data.get("government")),
            professional_societies=_strs(_pick(data, "professionalSocieties", "professional_societies")),
            academic_institutions=_strs(_pick(data, "academicInstitutions", "academic_institutions")),
            publishers=_strs(data.get("publishers")),
            medical_organizations=_strs(_pick(data, "medicalOrganizations", "medical_organizations")),
        )


@dataclass(frozen=True)
class TrialFilters:
    """Registry-specific filters forwarded to the ClinicalTrials endpoint."""

    recruitment_status: tuple[str, ...] = ()
    phase: tuple[str, ...] = ()
    location: dict[str, Any] | None = None  # {"address": ..., "radius": ...}
    age_range: dict[str, Any] | None = None  # {"min": ..., "max": ...}
    gender: str | None = None  # all | male | female

    def to_request(self) -> dict[str, Any]:
        """Wire format expected by the registry endpoint."""
        body: dict[str, Any] = {}
        if self.recruitment_status:
            body["recruitmentStatus"] = list(self.recruitment_status)
        if self.phase:
            body["phase"] = list(self.phase)
        if self.location:
            body["location"] = dict(self.location)
        if self.age_range:
            body["ageRange"] = dict(self.age_range)
        if self.gender:
            body["gender"] = self.gender
        return body

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrialFilters:
        return cls(
            recruitment_status=_strs(_pick(data, "recruitmentStatus", "recruitment_status")),
            phase=_strs(data.get("phase")),
            location=data.get("location"),
            age_range=_pick(data, "ageRange", "age_range"),
            gender=data.get("gender"),
        )


# camelCase wire name -> snake_case attribute, for the flat list filters
_ADVANCED_LIST_FIELDS = {
    "fileFormats": "file_formats",
    "peerReviewStatus": "peer_review_status",
    "citationTier": "citation_tier",
    "subspecialties": "subspecialties",
    "targetAudience": "target_audience",
    "contentComplexity": "content_complexity",
    "readingLevel": "reading_level",
    "diseaseCategories": "disease_categories",
    "symptomsAndSigns": "symptoms_and_signs",
    "treatmentTypes": "treatment_types",
    "preventionScreening": "prevention_screening",
    "updateStatus": "update_status",
    "evidenceGrade": "evidence_grade",
    "validationStatus": "validation_status",
    "accessType": "access_type",
    "downloadFormat": "download_format",
    "geographicRelevance": "geographic_relevance",
    "practiceSettings": "practice_settings",
    "patientPopulation": "patient_population",
    "careLevel": "care_level",
}


@dataclass(frozen=True)
class AdvancedFilters:
    """
    Structured filter set chosen in the advanced filter modal.

    Only content types, file formats, source authority and the recency
    period influence the outgoing query and post-hoc filtering; the other
    categories are carried for providers and metadata matching.
    """

    content_types: ContentTypeFilters | None = None
    file_formats: tuple[str, ...] = ()  # pdf, html, doc, ppt, video, audio
    source_authority: SourceAuthorityFilters | None = None
    peer_review_status: tuple[str, ...] = ()
    citation_tier: tuple[str, ...] = ()
    medical_specialties: dict[str, tuple[str, ...]] = field(default_factory=dict)
    subspecialties: tuple[str, ...] = ()
    target_audience: tuple[str, ...] = ()
    content_complexity: tuple[str, ...] = ()
    reading_level: tuple[str, ...] = ()
    disease_categories: tuple[str, ...] = ()
    symptoms_and_signs: tuple[str, ...] = ()
    treatment_types: tuple[str, ...] = ()
    prevention_screening: tuple[str, ...] = ()
    recency_period: str | None = None  # last-30-days, 3-months, 1-year, 2-years, 5-years, all-time
    update_status: tuple[str, ...] = ()
    evidence_grade: tuple[str, ...] = ()
    validation_status: tuple[str, ...] = ()
    access_type: tuple[str, ...] = ()
    full_text_available: bool | None = None
    download_format: tuple[str, ...] = ()
    mobile_optimized: bool | None = None
    geographic_relevance: tuple[str, ...] = ()
    practice_settings: tuple[str, ...] = ()
    patient_population: tuple[str, ...] = ()
    care_level: tuple[str, ...] = ()
    trial_filters: TrialFilters | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AdvancedFilters:
        kwargs: dict[str, Any] = {}
        for wire_name, attr in _ADVANCED_LIST_FIELDS.items():
            kwargs[attr] = _strs(_pick(data, wire_name, attr))

        content_types = _pick(data, "contentTypes", "content_types")
        if content_types:
            kwargs["content_types"] = ContentTypeFilters.from_dict(content_types)
        authority = _pick(data, "sourceAuthority", "source_authority")
        if authority:
            kwargs["source_authority"] = SourceAuthorityFilters.from_dict(authority)
        trial = _pick(data, "trialFilters", "trial_filters")
        if trial:
            kwargs["trial_filters"] = TrialFilters.from_dict(trial)
        specialties = _pick(data, "medicalSpecialties", "medical_specialties") or {}
        kwargs["medical_specialties"] = {k: _strs(v) for k, v in specialties.items() if v}

        return cls(
            recency_period=_pick(data, "recencyPeriod", "recency_period"),
            full_text_available=_pick(data, "fullTextAvailable", "full_text_available"),
            mobile_optimized=_pick(data, "mobileOptimized", "mobile_optimized"),
            **kwargs,
        )


# =============================================================================
# Query
# =============================================================================

DEFAULT_RESULT_LIMIT = 10


@dataclass(frozen=True)
class SearchQuery:
    """
    One logical medical-literature query.

    ``evidence_level``/``content_type`` are the legacy filters; when
    ``advanced_filters`` is present they are ignored by the query builder.
    An empty ``providers`` tuple means "all enabled providers".
    """

    query: str
    specialty: str | None = None
    evidence_level: tuple[str, ...] = ()
    content_type: tuple[str, ...] = ()
    recency: str | None = None
    limit: int | None = None
    providers: tuple[ProviderId, ...] = ()
    advanced_filters: AdvancedFilters | None = None
    trial_filters: TrialFilters | None = None  # legacy, prefer advanced_filters.trial_filters

    @property
    def result_limit(self) -> int:
        return self.limit or DEFAULT_RESULT_LIMIT

    @property
    def effective_trial_filters(self) -> TrialFilters | None:
        if self.trial_filters:
            return self.trial_filters
        if self.advanced_filters:
            return self.advanced_filters.trial_filters
        return None

    def cache_key(self) -> str:
        """Stable key from the normalized query text and every filter."""
        filters = asdict(self)
        filters.pop("query")
        payload = json.dumps(filters, sort_keys=True, default=str)
        return f"search:{self.query.lower().strip()}:{payload}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchQuery:
        advanced = _pick(data, "advancedFilters", "advanced_filters")
        trial = _pick(data, "trialFilters", "trial_filters")
        limit = data.get("limit")
        return cls(
            query=data["query"],
            specialty=data.get("specialty"),
            evidence_level=_strs(_pick(data, "evidenceLevel", "evidence_level")),
            content_type=_strs(_pick(data, "contentType", "content_type")),
            recency=data.get("recency"),
            limit=int(limit) if limit is not None else None,
            providers=tuple(ProviderId(p) for p in data.get("providers") or ()),
            advanced_filters=AdvancedFilters.from_dict(advanced) if advanced else None,
            trial_filters=TrialFilters.from_dict(trial) if trial else None,
        )


# =============================================================================
# Results
# =============================================================================


@dataclass
class ResultMetadata:
    """Optional enrichment; every field may be missing."""

    content_category: str | None = None  # research, guideline, reference, education, regulatory, patient
    file_format: str | None = None  # pdf, html, doc, ppt, video, audio
    authority_source: str | None = None  # government, professional-society, academic, publisher, medical-org
    authority_name: str | None = None
    peer_reviewed: bool | None = None
    citation_count: int | None = None
    target_audience: str | None = None
    complexity_level: str | None = None
    reading_level: str | None = None
    medical_specialty: str | None = None
    last_updated: str | None = None
    access_type: str | None = None
    full_text_available: bool | None = None
    geographic_relevance: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResultMetadata:
        return cls(
            content_category=_pick(data, "contentCategory", "content_category"),
            file_format=_pick(data, "fileFormat", "file_format"),
            authority_source=_pick(data, "authoritySource", "authority_source"),
            authority_name=_pick(data, "authorityName", "authority_name"),
            peer_reviewed=_pick(data, "peerReviewed", "peer_reviewed"),
            citation_count=_pick(data, "citationCount", "citation_count"),
            target_audience=_pick(data, "targetAudience", "target_audience"),
            complexity_level=_pick(data, "complexityLevel", "complexity_level"),
            reading_level=_pick(data, "readingLevel", "reading_level"),
            medical_specialty=_pick(data, "medicalSpecialty", "medical_specialty"),
            last_updated=_pick(data, "lastUpdated", "last_updated"),
            access_type=_pick(data, "accessType", "access_type"),
            full_text_available=_pick(data, "fullTextAvailable", "full_text_available"),
            geographic_relevance=_pick(data, "geographicRelevance", "geographic_relevance"),
        )


@dataclass
class SearchResult:
    """
    One hit in the canonical schema.

    ``id`` is namespaced by provider and is NOT globally unique; the
    aggregator's dedup key (normalized URL, else title) is the identity used
    for merging.
    """

    id: str
    title: str
    url: str
    snippet: str
    source: str
    provider: str
    relevance_score: float
    confidence: float | None = None
    evidence_level: str | None = None
    content_type: str | None = None
    publication_date: str | None = None
    specialty: str | None = None
    metadata: ResultMetadata | None = None

    @property
    def text(self) -> str:
        """Title and snippet, for keyword sniffing."""
        return f"{self.title} {self.snippet}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "snippet": self.snippet,
            "source": self.source,
            "provider": str(self.provider),
            "relevance_score": self.relevance_score,
            "confidence": self.confidence,
        }
        for key in ("evidence_level", "content_type", "publication_date", "specialty"):
            value = getattr(self, key)
            if value is not None:
                data[key] = str(value)
        if self.metadata:
            data["metadata"] = self.metadata.to_dict()
        return data


@dataclass
class SearchResponse:
    """Outcome of one provider call; folded into the aggregate and discarded."""

    results: list[SearchResult]
    total_count: int
    search_time_ms: float
    provider: str
    query: str
    status: ResponseStatus = ResponseStatus.SUCCESS
    error: str | None = None
    # Only the LLM-answer provider fills these
    summary: str | None = None
    evidence_level: str | None = None
    key_findings: list[str] | None = None

    @property
    def is_success(self) -> bool:
        return self.status != ResponseStatus.ERROR


@dataclass(frozen=True)
class FailedProvider:
    provider: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"provider": str(self.provider), "error": self.error}


@dataclass
class AggregatedSearchResponse:
    """Externally visible result of one orchestrator call."""

    results: list[SearchResult]
    total_count: int
    search_time_ms: float
    providers: list[str]
    query: str
    successful_providers: int
    failed_providers: list[FailedProvider] = field(default_factory=list)
    cache_hit: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "total_count": self.total_count,
            "search_time_ms": round(self.search_time_ms, 1),
            "providers": [str(p) for p in self.providers],
            "query": self.query,
            "successful_providers": self.successful_providers,
            "failed_providers": [f.to_dict() for f in self.failed_providers],
            "cache_hit": self.cache_hit,
        }
