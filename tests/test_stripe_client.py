try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest

from royalty_analytics.clients import StripeClient
from royalty_analytics.core.config import StripeSettings
from royalty_analytics.utils.exceptions import MalformedSourceDataError
from royalty_analytics.utils.http import RetryConfig


def _client(handler, *, max_pages=1, attempts=1):
    settings = StripeSettings(
        secret_key="sk_test_abc",
        api_base="https://stripe.test/v1",
        max_pages=max_pages,
    )
    return StripeClient(
        settings,
        retry_config=RetryConfig(attempts=attempts, backoff_seconds=0),
        transport=httpx.MockTransport(handler),
    )


def _page(ids, has_more):
    return {"object": "list", "data": [{"id": i} for i in ids], "has_more": has_more}


@pytest.mark.asyncio
async def test_balance_request_sends_connected_account_header():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"available": [], "pending": []})

    balance = await _client(handler).retrieve_balance(stripe_account="acct_1")

    assert balance == {"available": [], "pending": []}
    assert seen[0].url.path == "/v1/balance"
    assert seen[0].headers["Authorization"] == "Bearer sk_test_abc"
    assert seen[0].headers["Stripe-Account"] == "acct_1"


@pytest.mark.asyncio
async def test_balance_transactions_apply_created_window():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_page(["txn_1"], False))

    rows = await _client(handler).list_balance_transactions(
        stripe_account="acct_1", created_gte=100, created_lt=200
    )

    assert rows == [{"id": "txn_1"}]
    params = seen[0].url.params
    assert params["created[gte]"] == "100"
    assert params["created[lt]"] == "200"
    assert params["limit"] == "100"


@pytest.mark.asyncio
async def test_single_page_cap_is_the_default():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_page([f"txn_{n}" for n in range(100)], True))

    rows = await _client(handler).list_balance_transactions(stripe_account="acct_1")

    assert len(rows) == 100
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_pagination_follows_starting_after_when_enabled():
    pages = {
        None: _page(["po_1", "po_2"], True),
        "po_2": _page(["po_3"], False),
    }
    cursors = []

    def handler(request: httpx.Request) -> httpx.Response:
        cursor = request.url.params.get("starting_after")
        cursors.append(cursor)
        return httpx.Response(200, json=pages[cursor])

    rows = await _client(handler, max_pages=5).list_payouts(stripe_account="acct_1")

    assert [row["id"] for row in rows] == ["po_1", "po_2", "po_3"]
    assert cursors == [None, "po_2"]


@pytest.mark.asyncio
async def test_limit_truncates_results():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["limit"] == "2"
        return httpx.Response(200, json=_page(["po_1", "po_2"], True))

    rows = await _client(handler, max_pages=3).list_payouts(stripe_account="acct_1", limit=2)

    assert [row["id"] for row in rows] == ["po_1", "po_2"]


@pytest.mark.asyncio
async def test_transfers_filter_by_destination_without_account_header():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_page(["tr_1"], False))

    await _client(handler).list_transfers(destination="acct_9", created_gte=50)

    assert seen[0].url.params["destination"] == "acct_9"
    assert "Stripe-Account" not in seen[0].headers


@pytest.mark.asyncio
async def test_list_without_data_array_is_malformed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"object": "list", "data": "nope"})

    with pytest.raises(MalformedSourceDataError):
        await _client(handler).list_payouts(stripe_account="acct_1")


@pytest.mark.asyncio
async def test_server_errors_are_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            return httpx.Response(503, json={"error": {"message": "busy"}})
        return httpx.Response(200, json={"id": "acct_1"})

    account = await _client(handler, attempts=2).retrieve_account("acct_1")

    assert account == {"id": "acct_1"}
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(404, json={"error": {"message": "No such account"}})

    with pytest.raises(httpx.HTTPStatusError):
        await _client(handler, attempts=3).retrieve_account("acct_missing")

    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_non_json_response_is_malformed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(MalformedSourceDataError):
        await _client(handler).retrieve_balance(stripe_account="acct_1")
