"""
ClinicalTrials.gov registry search.

The backend function proxies the ClinicalTrials.gov v2 ``/studies`` API and
returns raw study records (``protocolSection`` modules). Studies are
normalized here: a synthesized snippet, a relevance score boosted by query
match, recruitment and recent updates, an evidence level derived from the
trial phase, and a specialty inferred from conditions and keywords.

API Documentation: https://clinicaltrials.gov/data-api/api
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, TypedDict

from medisearch.application.search.classification import (
    extract_trial_specialty,
    map_phase_to_evidence_level,
)
from medisearch.application.search.query_builder import build_provider_query
from medisearch.domain.entities import ContentType, ProviderId, SearchResponse, SearchResult

from .base import ProviderClient, elapsed_ms

if TYPE_CHECKING:
    from medisearch.domain.entities import SearchQuery

logger = logging.getLogger(__name__)

STUDY_URL = "https://clinicaltrials.gov/study/{nct_id}"
MAX_STUDIES = 20
DEFAULT_PAGE_SIZE = 20
TRIAL_CONFIDENCE = 0.95
SNIPPET_SUMMARY_CHARS = 150

DEFAULT_RECRUITMENT_STATUS = ["recruiting", "active"]
SPECIALTY_PHASES = ["phase2", "phase3", "phase4"]

# Relevance model
BASE_RELEVANCE = 0.85
RELEVANCE_STEP = 0.05
RELEVANCE_FLOOR = 0.3
QUERY_MATCH_BOOST = 0.15
RECRUITING_BOOST = 0.1
RECENT_UPDATE_BOOST = 0.05
RECENT_UPDATE_WINDOW = timedelta(days=30)


class ClinicalTrialsRequest(TypedDict):
    query: str
    filters: dict[str, Any]
    pageSize: int


def _section(study: dict[str, Any], module: str) -> dict[str, Any]:
    return (study.get("protocolSection") or {}).get(module) or {}


def _parse_date(value: str | None) -> datetime | None:
    """Registry dates are ``YYYY-MM-DD`` or ``YYYY-MM``."""
    if not value:
        return None
    if len(value) == 7:
        value = f"{value}-01"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.debug(f"Unparseable trial date: {value!r}")
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def trial_snippet(study: dict[str, Any]) -> str:
    """Summary excerpt, up to two conditions, the phase and a recruiting note."""
    brief = _section(study, "descriptionModule").get("briefSummary") or ""
    conditions = _section(study, "conditionsModule").get("conditions") or []
    phases = _section(study, "designModule").get("phases") or []
    status = _section(study, "statusModule").get("overallStatus") or ""

    snippet = brief[:SNIPPET_SUMMARY_CHARS].strip()
    if snippet and not snippet.endswith("."):
        snippet += "."
    if conditions:
        snippet += f" Conditions: {', '.join(conditions[:2])}."
    if phases:
        phase = str(phases[0]).replace("PHASE", "Phase ", 1).replace("_", " ", 1)
        snippet += f" {phase}."
    if status == "RECRUITING":
        snippet += " Currently recruiting participants."
    return snippet.strip()


def trial_relevance(study: dict[str, Any], query_text: str, index: int, now: datetime) -> float:
    score = max(BASE_RELEVANCE - index * RELEVANCE_STEP, RELEVANCE_FLOOR)

    conditions_module = _section(study, "conditionsModule")
    conditions = [str(c).lower() for c in conditions_module.get("conditions") or []]
    keywords = [str(k).lower() for k in conditions_module.get("keywords") or []]
    title = str(_section(study, "identificationModule").get("briefTitle") or "").lower()
    needle = query_text.lower()
    if any(needle in c for c in conditions) or needle in title or any(needle in k for k in keywords):
        score += QUERY_MATCH_BOOST

    status_module = _section(study, "statusModule")
    if status_module.get("overallStatus") == "RECRUITING":
        score += RECRUITING_BOOST

    last_update = _parse_date((status_module.get("lastUpdatePostDateStruct") or {}).get("date"))
    if last_update is not None and now - last_update < RECENT_UPDATE_WINDOW:
        score += RECENT_UPDATE_BOOST

    return min(score, 1.0)


def normalize_study(study: dict[str, Any], index: int, query_text: str, now: datetime) -> SearchResult:
    identification = _section(study, "identificationModule")
    status_module = _section(study, "statusModule")
    conditions_module = _section(study, "conditionsModule")
    nct_id = identification.get("nctId")

    return SearchResult(
        id=f"ct-{nct_id or index}",
        title=identification.get("officialTitle") or identification.get("briefTitle") or "Untitled Study",
        url=STUDY_URL.format(nct_id=nct_id or ""),
        snippet=trial_snippet(study),
        source="ClinicalTrials.gov",
        provider=ProviderId.CLINICALTRIALS,
        relevance_score=trial_relevance(study, query_text, index, now),
        confidence=TRIAL_CONFIDENCE,
        publication_date=(status_module.get("studyFirstPostDateStruct") or {}).get("date"),
        content_type=ContentType.CLINICAL_TRIAL,
        specialty=extract_trial_specialty(
            conditions_module.get("conditions") or [],
            conditions_module.get("keywords") or [],
        ),
        evidence_level=map_phase_to_evidence_level(_section(study, "designModule").get("phases")),
    )


class ClinicalTrialsClient(ProviderClient):
    """Client for the ClinicalTrials.gov search function."""

    provider_id = ProviderId.CLINICALTRIALS
    label = "ClinicalTrials"
    endpoint = "search-clinicaltrials"

    def build_request(self, query: SearchQuery) -> ClinicalTrialsRequest:
        trial_filters = query.effective_trial_filters
        if trial_filters is not None:
            filters = trial_filters.to_request()
        else:
            filters = {"recruitmentStatus": list(DEFAULT_RECRUITMENT_STATUS)}
            if query.specialty:
                filters["phase"] = list(SPECIALTY_PHASES)
        return {
            "query": build_provider_query(query, self.provider_id),
            "filters": filters,
            "pageSize": query.limit or DEFAULT_PAGE_SIZE,
        }

    async def search(self, query: SearchQuery) -> SearchResponse:
        started = time.perf_counter()
        request = self.build_request(query)
        data: dict[str, Any] = await self._gateway.post(self.endpoint, dict(request), label=self.label)
        studies: list[dict[str, Any]] = data.get("studies") or []
        now = self._clock()
        return SearchResponse(
            results=[normalize_study(s, i, request["query"], now) for i, s in enumerate(studies[:MAX_STUDIES])],
            total_count=int(data.get("totalCount") or len(studies)),
            search_time_ms=elapsed_ms(started),
            provider=self.provider_id,
            query=request["query"],
        )
