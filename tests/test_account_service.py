try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from royalty_analytics.services import (
    AccountNotFoundError,
    AccountOwnershipError,
    AccountService,
)
from royalty_analytics.utils.cache import TTLCache


class StubSupabase:
    def __init__(self, rows):
        self.rows = rows
        self.calls = []

    async def select(self, table, **kwargs):
        self.calls.append((table, kwargs))
        eq = kwargs.get("eq") or {}
        return [
            row
            for row in self.rows
            if all(row.get(column) == value for column, value in eq.items())
        ]


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _service(rows, clock=None):
    supabase = StubSupabase(rows)
    cache = TTLCache(capacity=8, ttl_seconds=60, clock=clock or FakeClock())
    return AccountService(supabase, cache), supabase


@pytest.mark.asyncio
async def test_get_account_caches_positive_lookups():
    clock = FakeClock()
    service, supabase = _service(
        [{"user_id": "user-1", "stripe_account_id": "acct_1"}], clock
    )

    first = await service.get_account(user_id="user-1")
    second = await service.get_account(user_id="user-1")

    assert first["stripe_account_id"] == "acct_1"
    assert second == first
    assert len(supabase.calls) == 1

    clock.now += 61
    await service.get_account(user_id="user-1")
    assert len(supabase.calls) == 2


@pytest.mark.asyncio
async def test_get_account_without_row_raises_not_found():
    service, _ = _service([{"user_id": "user-1", "stripe_account_id": None}])

    with pytest.raises(AccountNotFoundError):
        await service.get_account(user_id="user-1")
    with pytest.raises(AccountNotFoundError):
        await service.get_account(user_id="user-2")


@pytest.mark.asyncio
async def test_verify_ownership_accepts_registered_account():
    service, supabase = _service([{"user_id": "user-1", "stripe_account_id": "acct_1"}])

    await service.verify_ownership(user_id="user-1", stripe_account_id="acct_1")
    await service.verify_ownership(user_id="user-1", stripe_account_id="acct_1")

    assert len(supabase.calls) == 1
    _, kwargs = supabase.calls[0]
    assert kwargs["eq"] == {"user_id": "user-1", "stripe_account_id": "acct_1"}


@pytest.mark.asyncio
async def test_verify_ownership_rejects_foreign_account_every_time():
    service, supabase = _service([{"user_id": "user-2", "stripe_account_id": "acct_2"}])

    for _ in range(2):
        with pytest.raises(AccountOwnershipError):
            await service.verify_ownership(user_id="user-1", stripe_account_id="acct_2")

    assert len(supabase.calls) == 2
