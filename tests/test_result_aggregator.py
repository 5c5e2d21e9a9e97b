"""Tests for ResultAggregator - dedup, weighting, filters and ranking."""

from __future__ import annotations

import pytest

from medisearch.application.search.provider_registry import ProviderRegistry
from medisearch.application.search.result_aggregator import (
    ResultAggregator,
    dedup_key,
    detect_file_format,
    normalize_url,
)
from medisearch.domain.entities import (
    AdvancedFilters,
    ContentTypeFilters,
    SearchQuery,
    SourceAuthorityFilters,
)


@pytest.fixture
def aggregator():
    return ResultAggregator(ProviderRegistry().weights())


def filtered_query(**filters) -> SearchQuery:
    return SearchQuery(query="heart failure", advanced_filters=AdvancedFilters(**filters))


# ============================================================
# Dedup keys
# ============================================================


class TestDedupKey:
    def test_normalize_url(self):
        assert normalize_url("HTTPS://NEJM.org/doi/10.1056/x/#top") == "https://nejm.org/doi/10.1056/x"

    def test_query_is_part_of_the_key(self):
        assert normalize_url("https://www.youtube.com/watch?v=AAA#t=10") == "https://www.youtube.com/watch?v=AAA"
        assert normalize_url("https://a.org/article.php?id=1") != normalize_url("https://a.org/article.php?id=2")

    def test_urls_differing_only_in_query_stay_distinct(self, aggregator, make_result, make_response):
        response = make_response(
            "brave",
            [
                make_result("https://www.youtube.com/watch?v=AAA", confidence=0.8),
                make_result("https://www.youtube.com/watch?v=BBB", confidence=0.8),
            ],
        )

        results = aggregator.aggregate([response])

        assert [r.url for r in results] == [
            "https://www.youtube.com/watch?v=AAA",
            "https://www.youtube.com/watch?v=BBB",
        ]
        assert all(r.confidence == pytest.approx(0.8) for r in results)

    def test_url_key(self, make_result):
        a = make_result("https://nejm.org/doi/1/")
        b = make_result("https://nejm.org/doi/1")
        assert dedup_key(a) == dedup_key(b)

    def test_title_key_when_no_url(self, make_result):
        a = make_result("", title="Heart  Failure Update")
        b = make_result("  ", title="heart failure update")
        assert dedup_key(a) == dedup_key(b) == "heart-failure-update"


# ============================================================
# Merge
# ============================================================


class TestMerge:
    def test_duplicates_merge_with_boosted_confidence(self, aggregator, make_result, make_response):
        brave = make_response("brave", [make_result("https://nejm.org/doi/1/", relevance=0.9, confidence=0.8)])
        exa = make_response(
            "exa",
            [make_result("https://NEJM.org/doi/1#abstract", provider="exa", relevance=0.8, confidence=0.85)],
        )

        results = aggregator.aggregate([brave, exa])

        assert len(results) == 1
        assert results[0].relevance_score == pytest.approx(0.27)
        assert results[0].confidence == pytest.approx(1.0)

    def test_first_sight_weighting(self, aggregator, make_result, make_response):
        response = make_response("exa", [make_result(provider="exa", relevance=0.8, confidence=0.85)])
        [result] = aggregator.aggregate([response])
        assert result.relevance_score == pytest.approx(0.2)
        assert result.confidence == pytest.approx(0.85)

    def test_missing_confidence_defaults(self, aggregator, make_result, make_response):
        response = make_response("brave", [make_result(confidence=None)])
        [result] = aggregator.aggregate([response])
        assert result.confidence == pytest.approx(0.7)

    def test_unknown_provider_weight(self, aggregator, make_result, make_response):
        response = make_response("pubmed", [make_result(relevance=1.0)])
        [result] = aggregator.aggregate([response])
        assert result.relevance_score == pytest.approx(0.1)

    def test_confidence_capped(self, aggregator, make_result, make_response):
        responses = [make_response(p, [make_result("https://a.org/x", confidence=0.9)]) for p in ("brave", "exa")]
        responses.append(make_response("perplexity", [make_result("https://a.org/x", confidence=0.9)]))
        [result] = aggregator.aggregate(responses)
        assert result.confidence == 1.0

    def test_inputs_not_mutated(self, aggregator, make_result, make_response):
        original = make_result("https://nejm.org/x", relevance=0.9, confidence=0.8)
        duplicate = make_result("https://nejm.org/x", relevance=0.9, confidence=0.8)
        aggregator.aggregate([make_response("brave", [original]), make_response("exa", [duplicate])])
        assert original.relevance_score == 0.9
        assert original.confidence == 0.8
        assert duplicate.relevance_score == 0.9


# ============================================================
# Ranking
# ============================================================


class TestRanking:
    def test_sorted_by_combined_score(self, aggregator, make_result, make_response):
        response = make_response(
            "brave",
            [
                make_result("https://a.org/1", relevance=0.5, confidence=0.8),
                make_result("https://a.org/2", relevance=0.9, confidence=0.8),
                make_result("https://a.org/3", relevance=0.9, confidence=0.5),
            ],
        )
        urls = [r.url for r in aggregator.aggregate([response])]
        assert urls == ["https://a.org/2", "https://a.org/3", "https://a.org/1"]

    def test_deterministic_regardless_of_response_order(self, aggregator, make_result, make_response):
        brave = make_response(
            "brave",
            [make_result("https://b.org/1", relevance=0.5), make_result("https://a.org/1", relevance=0.5)],
        )
        exa = make_response(
            "exa",
            [
                make_result("https://c.org/1", provider="exa", relevance=0.6),
                make_result("https://d.org/1", provider="exa", relevance=0.9),
            ],
        )
        first = [r.url for r in aggregator.aggregate([brave, exa])]
        second = [r.url for r in aggregator.aggregate([exa, brave])]
        assert first == second

    def test_ties_broken_by_key(self, aggregator, make_result, make_response):
        response = make_response(
            "brave",
            [make_result("https://b.org/x"), make_result("https://a.org/x")],
        )
        assert [r.url for r in aggregator.aggregate([response])] == ["https://a.org/x", "https://b.org/x"]

    def test_truncated(self, make_result, make_response):
        aggregator = ResultAggregator({"brave": 1.0}, max_results=20)
        response = make_response("brave", [make_result(f"https://a.org/{i}") for i in range(30)])
        assert len(aggregator.aggregate([response])) == 20

    def test_empty(self, aggregator):
        assert aggregator.aggregate([]) == []


# ============================================================
# Advanced filters
# ============================================================


class TestFileFormatFilter:
    def test_excludes_mismatch_and_annotates(self, aggregator, make_result, make_response):
        response = make_response(
            "brave",
            [
                make_result("https://a.org/guide.pdf", title="HF guide"),
                make_result("https://a.org/page", title="HF page"),
            ],
        )
        results = aggregator.aggregate([response], filtered_query(file_formats=("pdf",)))
        assert [r.url for r in results] == ["https://a.org/guide.pdf"]
        assert results[0].metadata.file_format == "pdf"

    @pytest.mark.parametrize(
        ("fmt", "url", "title", "snippet"),
        [
            ("video", "https://youtube.com/watch?v=1", "", ""),
            ("video", "https://a.org", "Video lecture", ""),
            ("audio", "https://a.org/podcast/1", "", ""),
            ("audio", "https://a.org", "", "Listen to the audio"),
            ("pdf", "https://a.org/x", "", "Download PDF"),
            ("ppt", "https://a.org/deck.pptx", "", ""),
            ("ppt", "https://a.org", "", "Lecture slides"),
            ("html", "https://a.org", "", ""),
        ],
    )
    def test_sniffing(self, make_result, fmt, url, title, snippet):
        assert detect_file_format(make_result(url, title=title, snippet=snippet), fmt)

    def test_sniffing_negative(self, make_result):
        assert not detect_file_format(make_result("https://a.org/page", title="Text"), "video")


class TestAuthorityFilter:
    def test_government(self, aggregator, make_result, make_response):
        response = make_response(
            "brave",
            [make_result("https://www.cdc.gov/heart-failure"), make_result("https://blog.example.com/hf")],
        )
        query = filtered_query(source_authority=SourceAuthorityFilters(government=("cdc",)))
        results = aggregator.aggregate([response], query)
        assert [r.url for r in results] == ["https://www.cdc.gov/heart-failure"]
        assert results[0].metadata.authority_source == "government"
        assert results[0].metadata.authority_name == "cdc.gov"

    def test_only_selected_categories_match(self, aggregator, make_result, make_response):
        response = make_response(
            "brave",
            [make_result("https://www.cdc.gov/hf"), make_result("https://www.nejm.org/doi/1")],
        )
        query = filtered_query(source_authority=SourceAuthorityFilters(publishers=("nejm",)))
        assert [r.url for r in aggregator.aggregate([response], query)] == ["https://www.nejm.org/doi/1"]

    def test_lookalike_domain_rejected(self, aggregator, make_result, make_response):
        response = make_response("brave", [make_result("https://notcdc.gov.example.com/hf")])
        query = filtered_query(source_authority=SourceAuthorityFilters(government=("cdc",)))
        assert aggregator.aggregate([response], query) == []

    def test_empty_authority_does_not_filter(self, aggregator, make_result, make_response):
        response = make_response("brave", [make_result("https://blog.example.com/hf")])
        query = filtered_query(source_authority=SourceAuthorityFilters())
        assert len(aggregator.aggregate([response], query)) == 1


class TestContentTypeFilter:
    def test_annotates_but_never_excludes(self, aggregator, make_result, make_response):
        response = make_response(
            "brave",
            [
                make_result("https://a.org/1", title="A randomized trial of dapagliflozin", relevance=0.9),
                make_result("https://a.org/2", title="Hospital news", relevance=0.5),
            ],
        )
        query = filtered_query(content_types=ContentTypeFilters(research_literature=("trials",)))
        results = aggregator.aggregate([response], query)
        assert len(results) == 2
        assert results[0].metadata.content_category == "research"
        assert results[1].metadata is None

    def test_education_category(self, aggregator, make_result, make_response):
        response = make_response("brave", [make_result(title="CME module on heart failure")])
        query = filtered_query(content_types=ContentTypeFilters(educational_content=("cme-materials",)))
        [result] = aggregator.aggregate([response], query)
        assert result.metadata.content_category == "education"
