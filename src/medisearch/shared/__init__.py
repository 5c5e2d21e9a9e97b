"""
Shared module for MediSearch.

Provides:
- Unified exception hierarchy
- Async utilities (retry policy, settled gather, timeouts)
- Provider call metrics
"""

from .async_utils import (
    RetryPolicy,
    gather_settled,
    retry_with_policy,
    run_with_timeout,
)
from .exceptions import (
    AllProvidersFailedError,
    APIError,
    AuthenticationError,
    ConfigurationError,
    DataError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    MediSearchError,
    NetworkError,
    NoProvidersEnabledError,
    ParseError,
    ProviderHTTPError,
    ProviderTimeoutError,
    is_retryable_error,
    summarize_failures,
)
from .telemetry import ProviderMetrics, ProviderStats

__all__ = [
    # Exceptions
    "MediSearchError",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorCategory",
    "ConfigurationError",
    "NoProvidersEnabledError",
    "AuthenticationError",
    "APIError",
    "ProviderTimeoutError",
    "ProviderHTTPError",
    "NetworkError",
    "DataError",
    "ParseError",
    "AllProvidersFailedError",
    "is_retryable_error",
    "summarize_failures",
    # Async utilities
    "RetryPolicy",
    "retry_with_policy",
    "gather_settled",
    "run_with_timeout",
    # Telemetry
    "ProviderMetrics",
    "ProviderStats",
]
