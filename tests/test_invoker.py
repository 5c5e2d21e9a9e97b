"""Tests for ProviderInvoker: time budget, retry budget and metrics."""

from __future__ import annotations

import pytest

from medisearch.application.search import ProviderInvoker
from medisearch.shared.exceptions import (
    AuthenticationError,
    ConfigurationError,
    NetworkError,
    ProviderHTTPError,
    ProviderTimeoutError,
)
from medisearch.shared.telemetry import ProviderMetrics


def invoker_for(*clients, **kwargs) -> ProviderInvoker:
    return ProviderInvoker({c.provider_id: c for c in clients}, **kwargs)


class TestClientLookup:
    async def test_unknown_provider(self, make_provider, query):
        invoker = ProviderInvoker({})
        with pytest.raises(ConfigurationError, match="Unknown provider: brave"):
            await invoker.call_provider(make_provider("brave"), query)


# ============================================================
# Time budget
# ============================================================


class TestTimeout:
    async def test_slow_provider_times_out(self, fake_client, make_provider, make_response, query):
        client = fake_client("brave", [make_response("brave")], delay=0.5)
        provider = make_provider("brave", timeout_ms=20)

        with pytest.raises(ProviderTimeoutError, match="Provider brave timed out after 20ms") as exc_info:
            await invoker_for(client).call_provider(provider, query)

        assert exc_info.value.timeout_ms == 20
        assert exc_info.value.retryable is True

    async def test_fast_provider_returns_response(self, fake_client, make_provider, make_response, make_result, query):
        response = make_response("brave", [make_result()])
        client = fake_client("brave", [response])

        result = await invoker_for(client).call_provider(make_provider("brave"), query)

        assert result is response
        assert client.queries == [query]

    async def test_timeouts_are_retried(self, fake_client, make_provider, make_response, no_sleep, query):
        client = fake_client("exa", [make_response("exa")], delay=0.5)
        provider = make_provider("exa", timeout_ms=10, retry_count=1)

        with pytest.raises(ProviderTimeoutError):
            await invoker_for(client, sleep=no_sleep).call_provider_with_retry(provider, query)

        assert client.calls == 2


# ============================================================
# Retry budget
# ============================================================


class TestRetry:
    async def test_succeeds_after_transient_failures(self, fake_client, make_provider, make_response, no_sleep, query):
        ok = make_response("brave")
        client = fake_client("brave", [NetworkError("Brave request failed"), NetworkError("again"), ok])
        provider = make_provider("brave", retry_count=2)

        result = await invoker_for(client, sleep=no_sleep).call_provider_with_retry(provider, query)

        assert result is ok
        assert client.calls == 3
        assert [c.args[0] for c in no_sleep.await_args_list] == [1.0, 2.0]

    async def test_budget_is_retry_count_plus_one(self, fake_client, make_provider, no_sleep, query):
        error = ProviderHTTPError("Brave", 503, "Service Unavailable")
        client = fake_client("brave", [error])
        provider = make_provider("brave", retry_count=2)

        with pytest.raises(ProviderHTTPError) as exc_info:
            await invoker_for(client, sleep=no_sleep).call_provider_with_retry(provider, query)

        assert exc_info.value is error
        assert client.calls == 3

    async def test_zero_retries_means_one_attempt(self, fake_client, make_provider, no_sleep, query):
        client = fake_client("exa", [NetworkError()])

        with pytest.raises(NetworkError):
            await invoker_for(client, sleep=no_sleep).call_provider_with_retry(make_provider("exa"), query)

        assert client.calls == 1
        no_sleep.assert_not_awaited()

    async def test_authentication_errors_are_not_retried(self, fake_client, make_provider, no_sleep, query):
        client = fake_client("brave", [AuthenticationError()])
        provider = make_provider("brave", retry_count=2)

        with pytest.raises(AuthenticationError):
            await invoker_for(client, sleep=no_sleep).call_provider_with_retry(provider, query)

        assert client.calls == 1
        no_sleep.assert_not_awaited()


# ============================================================
# Metrics
# ============================================================


class TestMetrics:
    async def test_records_success_with_attempts(self, fake_client, make_provider, make_response, no_sleep, query):
        metrics = ProviderMetrics(enabled=True)
        client = fake_client("brave", [NetworkError(), make_response("brave")])
        invoker = invoker_for(client, sleep=no_sleep, metrics=metrics)

        await invoker.call_provider_with_retry(make_provider("brave", retry_count=1), query)

        stats = invoker.metrics.get("brave")
        assert stats is not None
        assert stats.count == 1
        assert stats.failures == 0
        assert stats.avg_attempts == 2

    async def test_records_failure(self, fake_client, make_provider, no_sleep, query):
        metrics = ProviderMetrics(enabled=True)
        client = fake_client("exa", [NetworkError("Exa request failed: boom")])
        invoker = invoker_for(client, sleep=no_sleep, metrics=metrics)

        with pytest.raises(NetworkError):
            await invoker.call_provider_with_retry(make_provider("exa"), query)

        [record] = metrics.get("exa").calls
        assert record.success is False
        assert record.error == "Exa request failed: boom"

    async def test_disabled_by_default(self, fake_client, make_provider, make_response, query):
        invoker = invoker_for(fake_client("brave", [make_response("brave")]))
        await invoker.call_provider_with_retry(make_provider("brave"), query)
        assert invoker.metrics.summary() == {}
