"""
Unified Exception Hierarchy for MediSearch.

Exception Hierarchy:
    MediSearchError (base)
    ├── ConfigurationError
    │   └── NoProvidersEnabledError
    ├── AuthenticationError
    ├── APIError
    │   ├── ProviderTimeoutError
    │   ├── ProviderHTTPError
    │   └── NetworkError
    ├── DataError
    │   └── ParseError
    └── AllProvidersFailedError

Per-provider errors (APIError, DataError) are retryable and are converted to
``{provider, error}`` records by the orchestrator. Configuration and
authentication errors fail fast.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from medisearch.domain.entities.search import FailedProvider


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    WARNING = auto()  # Recoverable, can continue
    ERROR = auto()  # Failed but can retry
    CRITICAL = auto()  # Cannot continue
    TRANSIENT = auto()  # Temporary, should retry automatically


class ErrorCategory(Enum):
    """Categories for error classification."""

    API = "api"
    AUTH = "auth"
    DATA = "data"
    CONFIGURATION = "config"
    NETWORK = "network"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Rich context attached to an error."""

    provider: str | None = None
    operation: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    retry_after: float | None = None
    related_errors: tuple[Exception, ...] = field(default_factory=tuple)
    metadata: dict[str, Any] = field(default_factory=dict)


class MediSearchError(Exception):
    """
    Base exception for all MediSearch errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.API,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.provider:
            result["provider"] = self.context.provider
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        return result


# =============================================================================
# Configuration / Authentication Errors
# =============================================================================


class ConfigurationError(MediSearchError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )


class NoProvidersEnabledError(ConfigurationError):
    """Raised when the registry resolves to an empty provider set."""

    def __init__(
        self,
        requested: Sequence[str] | None = None,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        message = "No providers enabled for search"
        if requested:
            message = f"No providers enabled for search (requested: {', '.join(requested)})"
        ctx = context or ErrorContext(
            input_value=tuple(requested or ()),
            suggestion="Enable at least one provider or widen the requested provider list",
        )
        super().__init__(message, context=ctx)


class AuthenticationError(MediSearchError):
    """Raised when no session credential is available."""

    def __init__(
        self,
        message: str = "Authentication required for search",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.AUTH,
            retryable=False,
        )


# =============================================================================
# API Errors
# =============================================================================


class APIError(MediSearchError):
    """Base class for errors talking to a provider endpoint."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        category: ErrorCategory = ErrorCategory.API,
        retryable: bool = True,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=category,
            retryable=retryable,
        )


class ProviderTimeoutError(APIError):
    """Raised when a single provider call exceeds its time budget."""

    def __init__(
        self,
        provider: str,
        timeout_ms: int,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            f"Provider {provider} timed out after {timeout_ms}ms",
            context=context or ErrorContext(provider=provider, metadata={"timeout_ms": timeout_ms}),
            category=ErrorCategory.TIMEOUT,
        )
        self.provider = provider
        self.timeout_ms = timeout_ms
        self.severity = ErrorSeverity.TRANSIENT


class ProviderHTTPError(APIError):
    """Raised for a non-2xx response from a provider endpoint."""

    def __init__(
        self,
        label: str,
        status_code: int,
        reason: str = "",
        *,
        detail: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        message = f"{label} API error: {status_code} {reason}".rstrip()
        if detail:
            message = f"{message} - {detail}"
        super().__init__(message, context=context)
        self.status_code = status_code
        self.reason = reason
        if status_code == 429:
            self.severity = ErrorSeverity.TRANSIENT

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


class NetworkError(APIError):
    """Raised for network connectivity issues."""

    def __init__(
        self,
        message: str = "Network connection failed",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message, context=context, category=ErrorCategory.NETWORK)


# =============================================================================
# Data Errors
# =============================================================================


class DataError(MediSearchError):
    """Base class for data-related errors."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.ERROR,
            category=ErrorCategory.DATA,
            retryable=retryable,
        )


class ParseError(DataError):
    """Raised when a provider response body cannot be parsed."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        full_msg = f"Failed to parse {source} API response: {message}" if source else f"Parse error: {message}"
        # Malformed bodies are usually transient proxy/gateway glitches
        super().__init__(full_msg, context=context, retryable=True)


# =============================================================================
# Total failure
# =============================================================================

_AUTH_MARKERS = ("authentication", "API key")
_RATE_LIMIT_MARKERS = ("rate limit", "429")
_SERVER_ERROR_MARKERS = ("500", "Internal Server Error")


def summarize_failures(failures: Sequence[FailedProvider]) -> str:
    """
    Build the aggregate message for a fan-out where every provider failed.

    The message counts authentication, rate-limit and server failures and
    names the first failing provider with its error.
    """
    auth = sum(1 for f in failures if any(m in f.error for m in _AUTH_MARKERS))
    rate = sum(1 for f in failures if any(m in f.error for m in _RATE_LIMIT_MARKERS))
    server = sum(1 for f in failures if any(m in f.error for m in _SERVER_ERROR_MARKERS))

    message = "All search providers failed"
    if auth:
        message += f" ({auth} authentication issues)"
    if rate:
        message += f" ({rate} rate limit issues)"
    if server:
        message += f" ({server} server errors)"
    if failures:
        first = failures[0]
        message += f": {first.provider}: {first.error}"
    return message


class AllProvidersFailedError(MediSearchError):
    """Raised when every enabled provider failed in a parallel search."""

    def __init__(
        self,
        failures: Sequence[FailedProvider],
        *,
        errors: Sequence[Exception] = (),
    ) -> None:
        super().__init__(
            summarize_failures(failures),
            context=ErrorContext(related_errors=tuple(errors)),
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.API,
            retryable=False,
        )
        self.failures = list(failures)


def is_retryable_error(error: BaseException) -> bool:
    """Check if an error should be retried."""
    if isinstance(error, MediSearchError):
        return error.retryable
    return isinstance(error, Exception)
