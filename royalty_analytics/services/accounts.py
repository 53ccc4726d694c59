"""
Lookups tying application users to their connected payout accounts.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from royalty_analytics.clients import SupabaseClient
from royalty_analytics.utils.cache import TTLCache

logger = logging.getLogger(__name__)


class AccountNotFoundError(Exception):
    """Raised when a user has no connected Stripe account."""


class AccountOwnershipError(Exception):
    """Raised when a Stripe account does not belong to the requesting user."""


class AccountService:
    """Resolve and verify ``stripe_accounts`` rows, caching positive lookups."""

    _TABLE = "stripe_accounts"

    def __init__(
        self,
        supabase_client: SupabaseClient,
        cache: TTLCache[Dict[str, Any]],
    ) -> None:
        self._supabase = supabase_client
        self._cache = cache

    async def get_account(
        self, *, user_id: str, access_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Return the user's connected account row."""
        cache_key = ("account", user_id)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        rows = await self._supabase.select(
            self._TABLE,
            eq={"user_id": user_id},
            limit=1,
            access_token=access_token,
        )
        if not rows or not rows[0].get("stripe_account_id"):
            raise AccountNotFoundError(f"No Stripe account found for user {user_id}.")

        account = rows[0]
        self._cache.set(cache_key, account)
        return account

    async def verify_ownership(
        self,
        *,
        user_id: str,
        stripe_account_id: str,
        access_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Ensure ``stripe_account_id`` is registered to ``user_id``."""
        cache_key = ("ownership", user_id, stripe_account_id)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        rows = await self._supabase.select(
            self._TABLE,
            columns="stripe_account_id,user_id",
            eq={"user_id": user_id, "stripe_account_id": stripe_account_id},
            limit=1,
            access_token=access_token,
        )
        if not rows:
            logger.warning(
                "User %s requested analytics for unowned account %s",
                user_id,
                stripe_account_id,
            )
            raise AccountOwnershipError("Invalid Stripe account.")

        self._cache.set(cache_key, rows[0])
        return rows[0]


__all__ = ["AccountNotFoundError", "AccountOwnershipError", "AccountService"]
