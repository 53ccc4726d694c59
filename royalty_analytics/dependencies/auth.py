"""
FastAPI dependencies resolving the calling user from a Supabase session.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request

from royalty_analytics.clients import SupabaseAuthError, SupabaseClient
from royalty_analytics.core.config import AnalyticsSettings
from royalty_analytics.schemas import AuthenticatedUser

from .clients import get_supabase_client
from .config import get_analytics_settings

logger = logging.getLogger(__name__)


def _token_from_cookie(raw: str) -> Optional[str]:
    """Cookies may hold a bare token or a JSON array whose first item is one."""
    value = raw.strip()
    if value.startswith("["):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return None
        if isinstance(parsed, list) and parsed and isinstance(parsed[0], str):
            return parsed[0]
        return None
    return value or None


def get_access_token(
    request: Request,
    settings: Annotated[AnalyticsSettings, Depends(get_analytics_settings)],
) -> Optional[str]:
    """Return the bearer token, falling back to known session cookies."""
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    for cookie_name in settings.auth_cookie_names:
        raw = request.cookies.get(cookie_name)
        if raw:
            token = _token_from_cookie(raw)
            if token:
                return token
    return None


async def get_current_user(
    access_token: Annotated[Optional[str], Depends(get_access_token)],
    supabase: Annotated[SupabaseClient, Depends(get_supabase_client)],
) -> AuthenticatedUser:
    """Resolve the session token to a user or answer 401."""
    if not access_token:
        raise HTTPException(status_code=HTTPStatus.UNAUTHORIZED, detail="Unauthorized")
    try:
        return await supabase.get_user(access_token)
    except SupabaseAuthError as exc:
        logger.info("Rejected session token: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED, detail="Unauthorized"
        ) from exc


__all__ = ["get_access_token", "get_current_user"]
