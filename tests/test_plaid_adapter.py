"""Tests for the Plaid adapter against a mocked Plaid API."""

import json
from datetime import date
from decimal import Decimal

import httpx
import pytest

from pulse.adapters.implementations.plaid import PlaidAdapter
from pulse.adapters.interfaces import AdapterCapability
from pulse.core.exceptions import ErrorCode, PulseError
from pulse.domain.models import AccountType, TransactionHistoryOptions, TransactionType

ACCOUNTS = {
    "accounts": [
        {
            "account_id": "plaid-chk",
            "balances": {"available": 100.0, "current": 110.5, "iso_currency_code": "USD"},
            "mask": "0000",
            "name": "Plaid Checking",
            "type": "depository",
            "subtype": "checking",
        },
        {
            "account_id": "plaid-sav",
            "balances": {"available": None, "current": 2000, "iso_currency_code": None},
            "name": "Plaid Saving",
            "type": "depository",
            "subtype": "savings",
        },
        {
            "account_id": "plaid-cc",
            "balances": {"current": 410.25, "iso_currency_code": "usd"},
            "name": "Plaid Credit Card",
            "type": "credit",
            "subtype": "credit card",
        },
        {
            "account_id": "plaid-other",
            "balances": {"current": 0},
            "name": "Something else",
            "type": "other",
        },
    ],
    "request_id": "req-1",
}

TRANSACTIONS = {
    "accounts": [],
    "transactions": [
        {
            "transaction_id": "tx-out",
            "account_id": "plaid-chk",
            "amount": 12.5,
            "iso_currency_code": "USD",
            "category": ["Food and Drink", "Restaurants"],
            "date": "2024-03-01",
            "name": "Coffee",
            "pending": False,
        },
        {
            "transaction_id": "tx-in",
            "account_id": "plaid-chk",
            "amount": -1000,
            "iso_currency_code": "USD",
            "date": "2024-03-02",
            "name": "Payroll",
            "pending": False,
        },
        {
            "transaction_id": "tx-pending",
            "account_id": "plaid-chk",
            "amount": 5,
            "date": "2024-03-03",
            "name": "Pending purchase",
            "pending": True,
        },
    ],
    "total_transactions": 3,
}


def plaid_api(request: httpx.Request) -> httpx.Response:
    routes = {
        "/link/token/create": {"link_token": "link-sandbox-123", "expiration": "2024-03-01T00:00:00Z"},
        "/item/public_token/exchange": {"access_token": "access-sandbox-1", "item_id": "item-1"},
        "/item/remove": {"request_id": "req-remove"},
        "/accounts/get": ACCOUNTS,
        "/transactions/get": TRANSACTIONS,
    }
    return httpx.Response(200, json=routes[request.url.path])


@pytest.fixture
def plaid(mock_http, fast_retry_config):
    client, requests = mock_http(plaid_api)
    adapter = PlaidAdapter(
        {"client_id": "client-1", "api_key": "secret-1", **fast_retry_config},
        http_client=client,
    )
    return adapter, requests


class TestPlaidConfig:
    def test_requires_credentials(self):
        with pytest.raises(PulseError) as exc_info:
            PlaidAdapter({"client_id": "client-1"})
        assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR

    def test_environment_selects_host(self):
        adapter = PlaidAdapter({"client_id": "c", "api_key": "s", "environment": "production"})
        assert adapter.connector.base_url == "https://production.plaid.com"

    def test_supports_token_exchange(self):
        adapter = PlaidAdapter({"client_id": "c", "api_key": "s"})
        assert adapter.supports(AdapterCapability.EXCHANGE_PUBLIC_TOKEN)
        assert not adapter.supports(AdapterCapability.STORE_ACCESS_TOKEN)


class TestPlaidAdapter:
    @pytest.mark.asyncio
    async def test_connect_delivers_link_token(self, plaid):
        adapter, requests = plaid
        tokens = []

        await adapter.connect("user-1", on_connect_token_created=tokens.append)

        assert tokens == ["link-sandbox-123"]
        sent = requests[0]
        assert sent.headers["PLAID-CLIENT-ID"] == "client-1"
        assert sent.headers["PLAID-SECRET"] == "secret-1"
        assert json.loads(sent.content)["user"] == {"client_user_id": "user-1"}

    @pytest.mark.asyncio
    async def test_exchange_stores_access_token(self, plaid):
        adapter, _ = plaid
        await adapter.exchange_public_token("user-1", "public-sandbox-1")
        assert adapter.sessions.get("user-1") == "access-sandbox-1"

    @pytest.mark.asyncio
    async def test_accounts_are_normalized(self, plaid):
        adapter, requests = plaid
        adapter.sessions.set("user-1", "access-sandbox-1")

        accounts = await adapter.get_accounts("user-1")

        assert [a.type for a in accounts] == [
            AccountType.CHECKING,
            AccountType.SAVINGS,
            AccountType.CREDIT,
            AccountType.OTHER,
        ]
        assert accounts[0].balance == Decimal("110.5")
        assert accounts[1].currency == "USD"
        assert accounts[2].currency == "USD"
        assert json.loads(requests[0].content) == {"access_token": "access-sandbox-1"}

    @pytest.mark.asyncio
    async def test_transactions_drop_pending_and_map_sign(self, plaid):
        adapter, requests = plaid
        adapter.sessions.set("user-1", "access-sandbox-1")
        options = TransactionHistoryOptions(start_date=date(2024, 3, 1), end_date=date(2024, 3, 31), limit=50, offset=10)

        transactions = await adapter.get_transactions("plaid-chk", "user-1", options)

        assert [t.id for t in transactions] == ["tx-out", "tx-in"]
        coffee, payroll = transactions
        assert (coffee.type, coffee.amount, coffee.category) == (TransactionType.DEBIT, Decimal("12.5"), "Food and Drink")
        assert (payroll.type, payroll.amount) == (TransactionType.CREDIT, Decimal("1000"))
        body = json.loads(requests[0].content)
        assert (body["start_date"], body["end_date"]) == ("2024-03-01", "2024-03-31")
        assert body["options"] == {"account_ids": ["plaid-chk"], "count": 50, "offset": 10}

    @pytest.mark.asyncio
    async def test_default_window_is_thirty_days(self, plaid):
        adapter, requests = plaid
        adapter.sessions.set("user-1", "access-sandbox-1")

        await adapter.get_transactions("plaid-chk", "user-1")

        body = json.loads(requests[0].content)
        span = date.fromisoformat(body["end_date"]) - date.fromisoformat(body["start_date"])
        assert span.days == 30
        assert body["options"]["count"] == 100

    @pytest.mark.asyncio
    async def test_zero_limit_returns_nothing(self, plaid):
        adapter, requests = plaid
        adapter.sessions.set("user-1", "access-sandbox-1")

        transactions = await adapter.get_transactions("plaid-chk", "user-1", TransactionHistoryOptions(limit=0))

        assert transactions == []
        assert requests == []

    @pytest.mark.asyncio
    async def test_not_connected(self, plaid):
        adapter, requests = plaid

        with pytest.raises(PulseError) as exc_info:
            await adapter.get_accounts("user-1")

        assert exc_info.value.code == ErrorCode.PROVIDER_CONNECTION_FAILED
        assert requests == []

    @pytest.mark.asyncio
    async def test_disconnect_removes_item(self, plaid):
        adapter, requests = plaid
        adapter.sessions.set("user-1", "access-sandbox-1")

        await adapter.disconnect("user-1")

        assert "user-1" not in adapter.sessions
        assert requests[0].url.path == "/item/remove"

    @pytest.mark.asyncio
    async def test_upstream_error_is_wrapped(self, mock_http, fast_retry_config):
        client, _ = mock_http(lambda request: httpx.Response(400, json={"error_code": "ITEM_LOGIN_REQUIRED"}))
        adapter = PlaidAdapter({"client_id": "c", "api_key": "s", **fast_retry_config}, http_client=client)
        adapter.sessions.set("user-1", "access")

        with pytest.raises(PulseError) as exc_info:
            await adapter.get_transactions("acc-1", "user-1")

        error = exc_info.value
        assert error.code == ErrorCode.TRANSACTION_FETCH_FAILED
        assert (error.provider, error.user_id, error.account_id) == ("plaid", "user-1", "acc-1")
        assert "400" in error.message

    @pytest.mark.asyncio
    async def test_malformed_payload_is_wrapped(self, mock_http, fast_retry_config):
        client, _ = mock_http(lambda request: httpx.Response(200, json={"unexpected": True}))
        adapter = PlaidAdapter({"client_id": "c", "api_key": "s", **fast_retry_config}, http_client=client)
        adapter.sessions.set("user-1", "access")

        with pytest.raises(PulseError) as exc_info:
            await adapter.get_accounts("user-1")

        assert exc_info.value.code == ErrorCode.ACCOUNT_FETCH_FAILED
