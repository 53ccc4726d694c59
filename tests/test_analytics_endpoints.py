try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio

import httpx
import pytest

from royalty_analytics.clients import SupabaseAuthError
from royalty_analytics.core.config import AnalyticsSettings
from royalty_analytics.main import app
from royalty_analytics.schemas import AnalyticsEnvelope, AuthenticatedUser, DateRange
from royalty_analytics.services import AccountNotFoundError, AccountOwnershipError
from royalty_analytics.utils.exceptions import SourceUnavailableError


class StubSupabase:
    def __init__(self) -> None:
        self.tokens: list[str] = []

    async def get_user(self, access_token: str) -> AuthenticatedUser:
        self.tokens.append(access_token)
        if access_token != "good-token":
            raise SupabaseAuthError("Invalid or expired session token.")
        return AuthenticatedUser(id="user-1", email="artist@example.com")


class StubAccounts:
    def __init__(self) -> None:
        self.owned = {"acct_1"}
        self.has_account = True

    async def get_account(self, *, user_id, access_token=None):
        if not self.has_account:
            raise AccountNotFoundError(f"No Stripe account found for user {user_id}.")
        return {"user_id": user_id, "stripe_account_id": "acct_1"}

    async def verify_ownership(self, *, user_id, stripe_account_id, access_token=None):
        if stripe_account_id not in self.owned:
            raise AccountOwnershipError("Invalid Stripe account.")
        return {"user_id": user_id, "stripe_account_id": stripe_account_id}


class StubStripeAnalytics:
    def __init__(self) -> None:
        self.calls = []
        self.error: Exception | None = None
        self.delay = 0.0

    async def build_analytics(self, *, stripe_account, period=None):
        self.calls.append((stripe_account, period))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return AnalyticsEnvelope(
            data={"revenue": {"total": 143.0}},
            period=period,
            date_range=DateRange(start=1, end=2),
        )


class StubEarnings:
    def __init__(self) -> None:
        self.calls = []
        self.error: Exception | None = None

    async def build_summary(self, *, user_id, stripe_account_id, access_token=None):
        self.calls.append((user_id, stripe_account_id, access_token))
        if self.error is not None:
            raise self.error
        return {"earnings": {"total": 370.0}, "has_stripe_account": True}


class StubStreaming:
    def __init__(self) -> None:
        self.error: Exception | None = None

    async def build_summary(self, *, user_id, access_token=None):
        if self.error is not None:
            raise self.error
        return {"streams_by_platform": [{"platform": "Spotify", "streams": 130.0}]}


pytestmark = pytest.mark.anyio("asyncio")

AUTH = {"Authorization": "Bearer good-token"}


@pytest.fixture()
def overrides():
    from royalty_analytics import dependencies

    stubs = {
        "supabase": StubSupabase(),
        "accounts": StubAccounts(),
        "stripe_analytics": StubStripeAnalytics(),
        "earnings": StubEarnings(),
        "streaming": StubStreaming(),
        "settings": AnalyticsSettings(request_timeout_seconds=0.2),
    }

    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_supabase_client: lambda: stubs["supabase"],
            dependencies.get_account_service: lambda: stubs["accounts"],
            dependencies.get_stripe_analytics_service: lambda: stubs["stripe_analytics"],
            dependencies.get_earnings_summary_service: lambda: stubs["earnings"],
            dependencies.get_streaming_analytics_service: lambda: stubs["streaming"],
            dependencies.get_analytics_settings: lambda: stubs["settings"],
        }
    )

    yield stubs

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(overrides):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client


async def test_healthcheck(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_missing_credentials_are_unauthorized(client):
    response = await client.get("/api/stripe/earnings-summary")

    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"


async def test_rejected_token_is_unauthorized(overrides, client):
    response = await client.get(
        "/api/analytics/streams", headers={"Authorization": "Bearer stale"}
    )

    assert response.status_code == 401
    assert overrides["supabase"].tokens == ["stale"]


async def test_session_cookie_is_accepted(overrides, client):
    response = await client.get(
        "/api/analytics/streams", headers={"Cookie": "sb-access-token=good-token"}
    )

    assert response.status_code == 200
    assert overrides["supabase"].tokens == ["good-token"]


async def test_json_array_session_cookie_is_accepted(overrides, client):
    response = await client.get(
        "/api/analytics/streams",
        headers={"Cookie": 'supabase-auth-token=["good-token","refresh"]'},
    )

    assert response.status_code == 200
    assert overrides["supabase"].tokens == ["good-token"]


async def test_streaming_analytics_returns_success_envelope(client):
    response = await client.get("/api/analytics/streams", headers=AUTH)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"streams_by_platform": [{"platform": "Spotify", "streams": 130.0}]},
    }


async def test_stripe_analytics_requires_account_header(client):
    response = await client.get("/api/stripe/analytics", headers=AUTH)

    assert response.status_code == 400
    assert response.json()["detail"] == "Stripe account ID required"


async def test_stripe_analytics_rejects_foreign_account(overrides, client):
    response = await client.get(
        "/api/stripe/analytics", headers={**AUTH, "Stripe-Account": "acct_other"}
    )

    assert response.status_code == 403
    assert overrides["stripe_analytics"].calls == []


async def test_stripe_analytics_returns_envelope(overrides, client):
    response = await client.get(
        "/api/stripe/analytics",
        params={"period": "7d"},
        headers={**AUTH, "Stripe-Account": "acct_1"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["period"] == "7d"
    assert body["date_range"] == {"start": 1, "end": 2}
    assert body["data"]["revenue"]["total"] == 143.0
    assert overrides["stripe_analytics"].calls == [("acct_1", "7d")]


async def test_source_failure_maps_to_stable_500(overrides, client):
    overrides["stripe_analytics"].error = SourceUnavailableError(
        {"balance": RuntimeError("stripe down")}
    )

    response = await client.get(
        "/api/stripe/analytics", headers={**AUTH, "Stripe-Account": "acct_1"}
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to retrieve analytics"}


async def test_slow_sources_time_out_with_500(overrides, client):
    overrides["stripe_analytics"].delay = 1.0

    response = await client.get(
        "/api/stripe/analytics", headers={**AUTH, "Stripe-Account": "acct_1"}
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to retrieve analytics"}


async def test_earnings_summary_without_account_is_not_found(overrides, client):
    overrides["accounts"].has_account = False

    response = await client.get("/api/stripe/earnings-summary", headers=AUTH)

    assert response.status_code == 404
    assert response.json()["has_stripe_account"] is False
    assert overrides["earnings"].calls == []


async def test_earnings_summary_returns_data(overrides, client):
    response = await client.get("/api/stripe/earnings-summary", headers=AUTH)

    assert response.status_code == 200
    assert response.json()["data"]["earnings"]["total"] == 370.0
    assert overrides["earnings"].calls == [("user-1", "acct_1", "good-token")]


async def test_unexpected_errors_map_to_500(overrides, client):
    overrides["earnings"].error = KeyError("stripe_account_id")

    response = await client.get("/api/stripe/earnings-summary", headers=AUTH)

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to retrieve earnings summary"}
