"""
Search Endpoint Client - authenticated JSON calls to the search functions.

All provider endpoints live under one base URL (``<functions_url>/<name>``)
and share one ``httpx.AsyncClient``. The client:
- attaches ``Authorization: Bearer <token>`` from a ``CredentialProvider``
- POSTs JSON bodies to provider endpoints, GETs the simple-search endpoint
- maps failures onto the exception hierarchy:
    non-2xx            -> ProviderHTTPError("<Label> API error: <status> <reason>")
    httpx.RequestError -> NetworkError
    invalid JSON       -> ParseError
- unwraps ``{"data": {...}}`` envelopes transparently

Retries and time budgets are NOT handled here; they belong to the invoker.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from typing_extensions import Self

from medisearch.shared.exceptions import (
    ErrorContext,
    NetworkError,
    ParseError,
    ProviderHTTPError,
)

if TYPE_CHECKING:
    from medisearch.infrastructure.auth import CredentialProvider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
ERROR_BODY_EXCERPT = 500

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def unwrap_payload(payload: Any, label: str) -> dict[str, Any]:
    """
    Flatten the optional ``{"data": {...}}`` success envelope.

    Keys inside the envelope win over top-level keys; top-level keys that
    the envelope does not carry (e.g. a summary) are kept.
    """
    if not isinstance(payload, dict):
        raise ParseError(f"expected a JSON object, got {type(payload).__name__}", source=label)
    nested = payload.get("data")
    if not isinstance(nested, dict):
        return payload
    merged = {k: v for k, v in payload.items() if k != "data"}
    merged.update(nested)
    return merged


class SearchEndpointClient:
    """
    Gateway to the authenticated search endpoints.

    Example:
        async with SearchEndpointClient(base_url, EnvCredentialProvider()) as gateway:
            data = await gateway.post("search-brave", {"q": "statins"}, label="Brave")
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            base_url: Base URL the endpoint names are appended to
            credentials: Source of the bearer token, consulted per request
            timeout: Transport-level timeout in seconds (the per-provider
                     budget is enforced by the invoker)
            transport: Optional transport, e.g. ``httpx.MockTransport`` in tests
        """
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers=JSON_HEADERS,
            transport=transport,
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=30.0,
            ),
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def _build_url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self._base_url}/{endpoint.lstrip('/')}"

    async def post(
        self,
        endpoint: str,
        body: dict[str, Any],
        *,
        label: str,
        include_error_body: bool = False,
    ) -> dict[str, Any]:
        """POST a JSON body and return the unwrapped JSON object."""
        return await self._request("POST", endpoint, label=label, json=body, include_error_body=include_error_body)

    async def get(
        self,
        endpoint: str,
        params: dict[str, Any],
        *,
        label: str,
    ) -> dict[str, Any]:
        """GET with query parameters and return the unwrapped JSON object."""
        return await self._request("GET", endpoint, label=label, params=params)

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        label: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        include_error_body: bool = False,
    ) -> dict[str, Any]:
        token = await self._credentials.get_session_token()
        url = self._build_url(endpoint)
        try:
            response = await self._client.request(
                method,
                url,
                json=json,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.RequestError as e:
            logger.warning(f"{label} request failed: {type(e).__name__}: {e}")
            raise NetworkError(
                f"{label} request failed: {e}",
                context=ErrorContext(provider=label, operation=f"{method} {endpoint}"),
            ) from e

        if not response.is_success:
            detail = response.text[:ERROR_BODY_EXCERPT] if include_error_body else None
            logger.warning(f"{label} HTTP error {response.status_code}: {response.reason_phrase}")
            raise ProviderHTTPError(
                label,
                response.status_code,
                response.reason_phrase,
                detail=detail or None,
                context=ErrorContext(provider=label, operation=f"{method} {endpoint}"),
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ParseError(str(e), source=label) from e
        return unwrap_payload(payload, label)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
