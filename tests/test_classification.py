"""Tests for keyword-based evidence and content classification."""

from __future__ import annotations

import pytest

from medisearch.application.search.classification import (
    classify_content_type,
    classify_evidence_level,
    decaying_relevance,
    extract_trial_specialty,
    map_phase_to_evidence_level,
)
from medisearch.domain.entities import ContentType, EvidenceLevel


class TestEvidenceLevel:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("A systematic review of statin therapy", EvidenceLevel.SYSTEMATIC_REVIEW),
            ("Meta-analysis of beta blockers", EvidenceLevel.SYSTEMATIC_REVIEW),
            ("A randomized controlled trial of SGLT2 inhibitors", EvidenceLevel.RCT),
            ("Prospective cohort of 10,000 nurses", EvidenceLevel.COHORT),
            ("Retrospective case-control analysis", EvidenceLevel.CASE_CONTROL),
            ("Case report: rare cardiomyopathy", EvidenceLevel.CASE_SERIES),
            ("Hospital visiting hours", EvidenceLevel.OTHER),
        ],
    )
    def test_canonical_phrases(self, text, expected):
        assert classify_evidence_level(text) == expected

    def test_first_rule_wins(self):
        text = "Systematic review and meta-analysis of randomized controlled trials and cohort studies"
        assert classify_evidence_level(text) == EvidenceLevel.SYSTEMATIC_REVIEW

    def test_rct_acronym(self):
        assert classify_evidence_level("Results of the DAPA-HF RCT") == EvidenceLevel.RCT
        assert classify_evidence_level("Pooled RCTs in heart failure") == EvidenceLevel.RCT

    def test_rct_inside_word_is_not_a_trial(self):
        assert classify_evidence_level("Arctic expedition medicine") == EvidenceLevel.OTHER

    def test_empty_text(self):
        assert classify_evidence_level("") == EvidenceLevel.OTHER


class TestContentType:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("2023 ESC Guidelines for heart failure", ContentType.CLINICAL_GUIDELINE),
            ("Expert consensus on anticoagulation", ContentType.CONSENSUS_STATEMENT),
            ("ACOG Practice Bulletin No. 222", ContentType.PRACTICE_BULLETIN),
            ("Journal of Cardiac Failure", ContentType.JOURNAL_ARTICLE),
            ("Hospital parking", ContentType.OTHER),
        ],
    )
    def test_rules(self, text, expected):
        assert classify_content_type(text) == expected


class TestTrialPhase:
    @pytest.mark.parametrize(
        ("phases", "expected"),
        [
            (["PHASE3"], EvidenceLevel.HIGH),
            (["PHASE4"], EvidenceLevel.HIGH),
            (["PHASE2", "PHASE3"], EvidenceLevel.MODERATE),
            (["PHASE1"], EvidenceLevel.LOW),
            (["EARLY_PHASE1"], EvidenceLevel.LOW),
            (["NA"], EvidenceLevel.OTHER),
            ([], EvidenceLevel.OTHER),
            (None, EvidenceLevel.OTHER),
        ],
    )
    def test_mapping(self, phases, expected):
        assert map_phase_to_evidence_level(phases) == expected


class TestTrialSpecialty:
    def test_cardiology(self):
        assert extract_trial_specialty(["Heart Failure"]) == "cardiology"

    def test_from_keywords(self):
        assert extract_trial_specialty(["Pain"], ["ovarian reserve"]) == "gynecology"

    def test_order_of_rules(self):
        assert extract_trial_specialty(["Cardiac tumor"]) == "cardiology"

    def test_general(self):
        assert extract_trial_specialty(["Migraine"]) == "general"


class TestDecayingRelevance:
    def test_sequence(self):
        scores = [decaying_relevance(i) for i in range(10)]
        assert scores[0] == pytest.approx(0.9)
        assert scores[3] == pytest.approx(0.6)
        assert scores[-1] == pytest.approx(0.1)

    def test_floor(self):
        assert decaying_relevance(50) == pytest.approx(0.1)
