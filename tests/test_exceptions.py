"""Tests for the exception hierarchy and failure summaries."""

from __future__ import annotations

import pytest

from medisearch.domain.entities import FailedProvider
from medisearch.shared.exceptions import (
    AllProvidersFailedError,
    APIError,
    AuthenticationError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    MediSearchError,
    NetworkError,
    NoProvidersEnabledError,
    ParseError,
    ProviderHTTPError,
    ProviderTimeoutError,
    is_retryable_error,
    summarize_failures,
)

# ============================================================
# Hierarchy
# ============================================================


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("bad"),
            NoProvidersEnabledError(),
            AuthenticationError(),
            ProviderTimeoutError("brave", 8000),
            ProviderHTTPError("Brave", 500, "Internal Server Error"),
            NetworkError(),
            ParseError("boom", source="Exa"),
            AllProvidersFailedError([]),
        ],
    )
    def test_all_are_medisearch_errors(self, error):
        assert isinstance(error, MediSearchError)

    def test_no_providers_is_configuration_error(self):
        assert isinstance(NoProvidersEnabledError(), ConfigurationError)

    def test_api_errors(self):
        assert isinstance(ProviderTimeoutError("exa", 1), APIError)
        assert isinstance(ProviderHTTPError("Exa", 502), APIError)
        assert isinstance(NetworkError(), APIError)


# ============================================================
# Messages
# ============================================================


class TestMessages:
    def test_no_providers_message(self):
        assert str(NoProvidersEnabledError()) == "No providers enabled for search"

    def test_no_providers_message_lists_requested(self):
        error = NoProvidersEnabledError(["exa", "perplexity"])
        assert "No providers enabled for search" in str(error)
        assert "exa, perplexity" in str(error)

    def test_authentication_message(self):
        assert str(AuthenticationError()) == "Authentication required for search"

    def test_timeout_message(self):
        error = ProviderTimeoutError("brave", 8000)
        assert str(error) == "Provider brave timed out after 8000ms"
        assert error.provider == "brave"
        assert error.timeout_ms == 8000
        assert error.category is ErrorCategory.TIMEOUT

    def test_http_error_message(self):
        error = ProviderHTTPError("Brave", 503, "Service Unavailable")
        assert str(error) == "Brave API error: 503 Service Unavailable"
        assert error.status_code == 503
        assert not error.is_rate_limited

    def test_http_error_with_detail(self):
        error = ProviderHTTPError("Perplexity", 400, "Bad Request", detail="missing q")
        assert str(error) == "Perplexity API error: 400 Bad Request - missing q"

    def test_http_error_rate_limited(self):
        assert ProviderHTTPError("Exa", 429, "Too Many Requests").is_rate_limited

    def test_parse_error_message(self):
        assert str(ParseError("Expecting value", source="Brave")) == (
            "Failed to parse Brave API response: Expecting value"
        )


# ============================================================
# Retry classification
# ============================================================


class TestIsRetryable:
    def test_transient_errors_retry(self):
        assert is_retryable_error(ProviderTimeoutError("brave", 1))
        assert is_retryable_error(ProviderHTTPError("Brave", 500))
        assert is_retryable_error(NetworkError())
        assert is_retryable_error(ParseError("x"))

    def test_fail_fast_errors(self):
        assert not is_retryable_error(AuthenticationError())
        assert not is_retryable_error(ConfigurationError("x"))

    def test_unknown_exceptions_retry(self):
        assert is_retryable_error(RuntimeError("boom"))

    def test_base_exceptions_do_not_retry(self):
        assert not is_retryable_error(KeyboardInterrupt())


# ============================================================
# Failure summaries
# ============================================================


class TestSummarizeFailures:
    def test_prefix_and_first_failure(self):
        failures = [
            FailedProvider("brave", "Brave API error: 503 Service Unavailable"),
            FailedProvider("exa", "Provider exa timed out after 10000ms"),
        ]
        message = summarize_failures(failures)
        assert message.startswith("All search providers failed")
        assert message.endswith(": brave: Brave API error: 503 Service Unavailable")

    def test_counts_categories(self):
        failures = [
            FailedProvider("brave", "Invalid API key"),
            FailedProvider("exa", "Exa API error: 429 Too Many Requests"),
            FailedProvider("perplexity", "Perplexity API error: 500 Internal Server Error"),
            FailedProvider("clinicaltrials", "authentication failed"),
        ]
        message = summarize_failures(failures)
        assert "(2 authentication issues)" in message
        assert "(1 rate limit issues)" in message
        assert "(1 server errors)" in message

    def test_no_counts_when_uncategorized(self):
        message = summarize_failures([FailedProvider("brave", "boom")])
        assert message == "All search providers failed: brave: boom"

    def test_all_failed_error_carries_failures(self):
        failures = [FailedProvider("brave", "boom")]
        cause = RuntimeError("boom")
        error = AllProvidersFailedError(failures, errors=[cause])
        assert error.failures == failures
        assert error.context.related_errors == (cause,)
        assert not error.retryable


# ============================================================
# Serialization
# ============================================================


class TestToDict:
    def test_to_dict(self):
        error = NetworkError(
            "Connection refused",
            context=ErrorContext(provider="brave", suggestion="Check connectivity", retry_after=2.0),
        )
        data = error.to_dict()
        assert data["error"] == "Connection refused"
        assert data["category"] == "network"
        assert data["severity"] == "error"
        assert data["retryable"] is True
        assert data["provider"] == "brave"
        assert data["suggestion"] == "Check connectivity"
        assert data["retry_after_seconds"] == 2.0

    def test_to_dict_minimal(self):
        data = AuthenticationError().to_dict()
        assert data == {
            "error": "Authentication required for search",
            "category": "auth",
            "severity": "critical",
            "retryable": False,
        }
