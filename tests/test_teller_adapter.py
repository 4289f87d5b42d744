"""Tests for the Teller adapter against a mocked Teller API."""

import base64
import json
from datetime import date, timezone
from decimal import Decimal

import httpx
import pytest

from pulse.adapters.implementations.teller import TellerAdapter
from pulse.adapters.interfaces import AdapterCapability
from pulse.core.exceptions import ErrorCode, PulseError
from pulse.domain.models import AccountType, TransactionHistoryOptions, TransactionType


def teller_account(account_id, account_type="depository", subtype="checking", **overrides):
    account = {
        "id": account_id,
        "name": f"Teller {account_id}",
        "type": account_type,
        "subtype": subtype,
        "balances": {"available": "90.00", "ledger": "95.00"},
        "currency": "usd",
        "enrollment_id": "enr-1",
        "institution": {"id": "chase", "name": "Chase"},
        "last_updated": "2024-03-10",
        "links": {"self": f"https://api.teller.io/accounts/{account_id}"},
        "status": "open",
    }
    account.update(overrides)
    return account


def teller_transaction(tx_id, amount, tx_date, status="posted"):
    return {
        "id": tx_id,
        "account_id": "acc-1",
        "date": tx_date,
        "amount": amount,
        "description": f"Teller {tx_id}",
        "status": status,
        "type": "card_payment",
        "running_balance": None,
        "details": {"category": "dining", "processing_status": "complete" if status == "posted" else "pending"},
        "links": {"self": f"https://api.teller.io/accounts/acc-1/transactions/{tx_id}", "account": "https://api.teller.io/accounts/acc-1"},
    }


ACCOUNTS = [
    teller_account("acc-1"),
    teller_account("acc-2", subtype="savings", last_updated="2024-03-10T08:30:00Z"),
    teller_account("acc-3", account_type="credit", subtype="credit_card", balances={"current": "-250.75"}),
]

TRANSACTIONS = [
    teller_transaction("tx-1", "-18.20", "2024-03-05"),
    teller_transaction("tx-2", "1500.00", "2024-03-04"),
    teller_transaction("tx-3", "-3.00", "2024-03-06", status="pending"),
    teller_transaction("tx-4", "-40.00", "2024-02-20"),
]


def teller_api(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/connect/token":
        return httpx.Response(200, json={"connect_token": "connect-abc"})
    if path == "/connect/token/revoke":
        return httpx.Response(204)
    if path == "/accounts":
        return httpx.Response(200, json=ACCOUNTS)
    if path == "/accounts/acc-1/transactions":
        return httpx.Response(200, json=TRANSACTIONS)
    return httpx.Response(404, json={"error": {"code": "not_found"}})


@pytest.fixture
def teller(mock_http, fast_retry_config):
    client, requests = mock_http(teller_api)
    adapter = TellerAdapter({"api_key": "teller-key", **fast_retry_config}, http_client=client)
    return adapter, requests


class TestTellerConfig:
    def test_requires_api_key(self):
        with pytest.raises(PulseError) as exc_info:
            TellerAdapter({})
        assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR

    def test_certificate_requires_key(self):
        with pytest.raises(PulseError) as exc_info:
            TellerAdapter({"api_key": "k", "certificate": "/tmp/cert.pem"})
        assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR

    def test_supports_direct_token_storage(self):
        adapter = TellerAdapter({"api_key": "k"})
        assert adapter.supports(AdapterCapability.STORE_ACCESS_TOKEN)
        assert not adapter.supports(AdapterCapability.EXCHANGE_PUBLIC_TOKEN)


class TestTellerAdapter:
    @pytest.mark.asyncio
    async def test_connect_delivers_connect_token(self, teller):
        adapter, requests = teller
        tokens = []

        await adapter.connect("user-1", on_connect_token_created=tokens.append)

        assert tokens == ["connect-abc"]
        assert requests[0].headers["Authorization"] == "Bearer teller-key"
        assert json.loads(requests[0].content)["user_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_store_access_token_requires_value(self, teller):
        adapter, _ = teller

        with pytest.raises(PulseError) as exc_info:
            await adapter.store_access_token("user-1", "")

        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_accounts_use_basic_auth_and_normalize(self, teller):
        adapter, requests = teller
        await adapter.store_access_token("user-1", "token_abc")

        accounts = await adapter.get_accounts("user-1")

        expected_auth = "Basic " + base64.b64encode(b"token_abc:").decode()
        assert requests[0].headers["Authorization"] == expected_auth
        assert [a.type for a in accounts] == [AccountType.CHECKING, AccountType.SAVINGS, AccountType.CREDIT]
        assert accounts[0].balance == Decimal("95.00")
        assert accounts[0].currency == "USD"
        assert accounts[0].last_updated.tzinfo == timezone.utc
        assert accounts[1].last_updated.hour == 8
        assert accounts[2].balance == Decimal("-250.75")
        assert accounts[0].metadata["institution"] == {"id": "chase", "name": "Chase"}

    @pytest.mark.asyncio
    async def test_transactions_drop_pending_and_map_sign(self, teller):
        adapter, _ = teller
        await adapter.store_access_token("user-1", "token_abc")

        transactions = await adapter.get_transactions("acc-1", "user-1")

        assert [t.id for t in transactions] == ["tx-1", "tx-2", "tx-4"]
        assert (transactions[0].type, transactions[0].amount) == (TransactionType.DEBIT, Decimal("18.20"))
        assert (transactions[1].type, transactions[1].amount) == (TransactionType.CREDIT, Decimal("1500.00"))
        assert transactions[0].category == "dining"

    @pytest.mark.asyncio
    async def test_options_applied_locally(self, teller):
        adapter, _ = teller
        await adapter.store_access_token("user-1", "token_abc")
        options = TransactionHistoryOptions(start_date=date(2024, 3, 1), limit=1, offset=1)

        transactions = await adapter.get_transactions("acc-1", "user-1", options)

        assert [t.id for t in transactions] == ["tx-2"]

    @pytest.mark.asyncio
    async def test_disconnect_revokes_token(self, teller):
        adapter, requests = teller
        await adapter.store_access_token("user-1", "token_abc")

        await adapter.disconnect("user-1")

        assert "user-1" not in adapter.sessions
        assert requests[0].url.path == "/connect/token/revoke"
        assert json.loads(requests[0].content) == {"token": "token_abc"}

    @pytest.mark.asyncio
    async def test_failed_revoke_still_clears_session(self, mock_http, fast_retry_config):
        client, _ = mock_http(lambda request: httpx.Response(401, json={"error": "unauthorized"}))
        adapter = TellerAdapter({"api_key": "k", **fast_retry_config}, http_client=client)
        await adapter.store_access_token("user-1", "token_abc")

        with pytest.raises(PulseError) as exc_info:
            await adapter.disconnect("user-1")

        assert exc_info.value.code == ErrorCode.PROVIDER_DISCONNECTION_FAILED
        assert "user-1" not in adapter.sessions

    @pytest.mark.asyncio
    async def test_unknown_account_is_wrapped(self, teller):
        adapter, _ = teller
        await adapter.store_access_token("user-1", "token_abc")

        with pytest.raises(PulseError) as exc_info:
            await adapter.get_transactions("acc-404", "user-1")

        assert exc_info.value.code == ErrorCode.TRANSACTION_FETCH_FAILED
        assert exc_info.value.account_id == "acc-404"
