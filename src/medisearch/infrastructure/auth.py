"""
Session credentials for the search endpoints.

Every endpoint call carries ``Authorization: Bearer <token>``. The token is
looked up before each request so that a refreshed session is picked up
without rebuilding the client.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from medisearch.shared.exceptions import AuthenticationError, ErrorContext

if TYPE_CHECKING:
    from collections.abc import Mapping

SESSION_TOKEN_ENV = "MEDISEARCH_SESSION_TOKEN"


@runtime_checkable
class CredentialProvider(Protocol):
    """Source of the bearer token for the current session."""

    async def get_session_token(self) -> str:
        """Return the token or raise ``AuthenticationError``."""
        ...


class StaticCredentialProvider:
    """Fixed token, e.g. one obtained by the caller's own login flow."""

    def __init__(self, token: str | None) -> None:
        self._token = token

    async def get_session_token(self) -> str:
        if not self._token:
            raise AuthenticationError()
        return self._token


class EnvCredentialProvider:
    """Token read from ``MEDISEARCH_SESSION_TOKEN`` on every call."""

    def __init__(self, env: Mapping[str, str] | None = None, variable: str = SESSION_TOKEN_ENV) -> None:
        self._env = env
        self._variable = variable

    async def get_session_token(self) -> str:
        env = os.environ if self._env is None else self._env
        token = env.get(self._variable, "").strip()
        if not token:
            raise AuthenticationError(
                context=ErrorContext(suggestion=f"Set {self._variable} to a valid session token"),
            )
        return token
