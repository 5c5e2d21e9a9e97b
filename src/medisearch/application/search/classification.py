"""
Keyword-based medical literature classification.

Rules are ordered; the first matching rule wins. Matching is case-insensitive
substring matching except for short acronyms (``rct``), which must stand as a
whole word so that e.g. "direct" does not count as a trial.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from medisearch.domain.entities import ContentType, EvidenceLevel

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

_RCT_WORD = re.compile(r"\brcts?\b")

# (level, phrases) - checked in order
EVIDENCE_RULES: tuple[tuple[EvidenceLevel, tuple[str, ...]], ...] = (
    (EvidenceLevel.SYSTEMATIC_REVIEW, ("systematic review", "meta-analysis")),
    (EvidenceLevel.RCT, ("randomized controlled trial",)),
    (EvidenceLevel.COHORT, ("cohort", "prospective")),
    (EvidenceLevel.CASE_CONTROL, ("case-control", "retrospective")),
    (EvidenceLevel.CASE_SERIES, ("case series", "case report")),
)

CONTENT_TYPE_RULES: tuple[tuple[ContentType, tuple[str, ...]], ...] = (
    (ContentType.CLINICAL_GUIDELINE, ("guideline",)),  # also matches "guidelines"
    (ContentType.CONSENSUS_STATEMENT, ("consensus", "statement")),
    (ContentType.PRACTICE_BULLETIN, ("practice bulletin", "bulletin")),
    (ContentType.JOURNAL_ARTICLE, ("journal", "article")),
)

PHASE_EVIDENCE = {
    "PHASE4": EvidenceLevel.HIGH,
    "PHASE3": EvidenceLevel.HIGH,
    "PHASE2": EvidenceLevel.MODERATE,
    "PHASE1": EvidenceLevel.LOW,
    "EARLY_PHASE1": EvidenceLevel.LOW,
}

# (specialty, stems) - checked in order against trial conditions + keywords
TRIAL_SPECIALTY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("cardiology", ("cardiac", "heart", "cardiovascular")),
    ("oncology", ("cancer", "oncolog", "tumor")),
    ("obstetrics", ("pregnan", "maternal", "obstetric")),
    ("gynecology", ("gynecolog", "reproduct", "ovarian")),
)


def classify_evidence_level(text: str) -> EvidenceLevel:
    """
    Infer the evidence level of a hit from its title and snippet.

    >>> classify_evidence_level("A systematic review of statins")
    <EvidenceLevel.SYSTEMATIC_REVIEW: 'systematic-review'>
    """
    lowered = (text or "").lower()
    for level, phrases in EVIDENCE_RULES:
        if any(phrase in lowered for phrase in phrases):
            return level
        if level is EvidenceLevel.RCT and _RCT_WORD.search(lowered):
            return level
    return EvidenceLevel.OTHER


def classify_content_type(text: str) -> ContentType:
    """Infer the content type of a hit from its title and snippet."""
    lowered = (text or "").lower()
    for content_type, phrases in CONTENT_TYPE_RULES:
        if any(phrase in lowered for phrase in phrases):
            return content_type
    return ContentType.OTHER


def map_phase_to_evidence_level(phases: Sequence[str] | None) -> EvidenceLevel:
    """Map the first listed trial phase to an evidence level."""
    if not phases:
        return EvidenceLevel.OTHER
    return PHASE_EVIDENCE.get(str(phases[0]).upper(), EvidenceLevel.OTHER)


def extract_trial_specialty(conditions: Iterable[str], keywords: Iterable[str] = ()) -> str:
    terms = " ".join([*conditions, *keywords]).lower()
    for specialty, stems in TRIAL_SPECIALTY_RULES:
        if any(stem in terms for stem in stems):
            return specialty
    return "general"


def decaying_relevance(index: int, start: float = 0.9, step: float = 0.1, floor: float = 0.1) -> float:
    """Baseline relevance for providers that do not score their own results."""
    return max(start - index * step, floor)
