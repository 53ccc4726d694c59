"""Thin async wrapper over the Supabase PostgREST and Auth HTTP APIs."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from royalty_analytics.core.config import SupabaseSettings
from royalty_analytics.schemas import AuthenticatedUser
from royalty_analytics.utils.exceptions import MalformedSourceDataError
from royalty_analytics.utils.http import RetryConfig, request_with_retry


class SupabaseAuthError(Exception):
    """Raised when an access token cannot be resolved to a user."""


class SupabaseClient:
    """Read table rows and resolve session tokens."""

    def __init__(
        self,
        settings: SupabaseSettings,
        *,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._settings = settings
        self._base_url = str(settings.url).rstrip("/")
        self._retry = retry_config or RetryConfig()
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        bearer = (
            access_token
            or self._settings.service_role_key
            or self._settings.anon_key
        )
        return {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {bearer}",
            "Accept": "application/json",
        }

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        eq: Mapping[str, Any] | None = None,
        gte: Mapping[str, Any] | None = None,
        lt: Mapping[str, Any] | None = None,
        order: str | None = None,
        limit: int | None = None,
        access_token: str | None = None,
    ) -> List[Dict[str, Any]]:
        """Select rows from ``table`` using PostgREST filter operators."""
        params: List[Tuple[str, str]] = [("select", columns)]
        for operator, filters in (("eq", eq), ("gte", gte), ("lt", lt)):
            for column, value in (filters or {}).items():
                params.append((column, f"{operator}.{value}"))
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))

        async with self._client() as client:
            response = await request_with_retry(
                client.get,
                f"{self._base_url}/rest/v1/{table}",
                params=params,
                headers=self._headers(access_token),
                retry_config=self._retry,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedSourceDataError(f"Non-JSON response from {table}") from exc
        if not isinstance(payload, list):
            raise MalformedSourceDataError(
                f"Expected a row list from {table}, got {type(payload).__name__}"
            )
        return [row for row in payload if isinstance(row, dict)]

    async def get_user(self, access_token: str) -> AuthenticatedUser:
        """Resolve a session access token to the owning user."""
        async with self._client() as client:
            try:
                response = await request_with_retry(
                    client.get,
                    f"{self._base_url}/auth/v1/user",
                    headers=self._headers(access_token),
                    retry_config=self._retry,
                )
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code in (401, 403):
                    raise SupabaseAuthError("Invalid or expired session token.") from exc
                raise

        try:
            payload = response.json()
        except ValueError as exc:
            raise SupabaseAuthError("Auth response was not JSON.") from exc
        if not isinstance(payload, dict) or not payload.get("id"):
            raise SupabaseAuthError("Auth response did not include a user.")
        return AuthenticatedUser.model_validate(payload)


__all__ = ["SupabaseAuthError", "SupabaseClient"]
