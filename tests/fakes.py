"""In-memory adapters and builders shared by the test suite."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pulse.adapters.interfaces import AdapterCapability, PulseAdapter
from pulse.core.exceptions import ErrorCode, PulseError
from pulse.domain.models import (
    Account,
    AccountType,
    Transaction,
    TransactionHistoryOptions,
    TransactionType,
)


def make_account(account_id: str, **overrides: Any) -> Account:
    fields = {
        "id": account_id,
        "name": f"Account {account_id}",
        "type": AccountType.CHECKING,
        "balance": Decimal("100.00"),
        "currency": "usd",
        "last_updated": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Account(**fields)


def make_transaction(tx_id: str, account_id: str = "acc-1", **overrides: Any) -> Transaction:
    fields = {
        "id": tx_id,
        "account_id": account_id,
        "amount": Decimal("10.00"),
        "currency": "USD",
        "description": f"Transaction {tx_id}",
        "type": TransactionType.DEBIT,
        "date": date(2024, 1, 2),
    }
    fields.update(overrides)
    return Transaction(**fields)


class FakeAdapter(PulseAdapter):
    """
    Adapter double recording every call.

    ``fail`` maps an operation name to the exception it should raise;
    ``revoke_fail_for`` lists users whose remote revoke fails.
    """

    PROVIDER = "fake"

    def __init__(
        self,
        provider: str = "fake",
        accounts: Optional[List[Account]] = None,
        transactions: Optional[List[Transaction]] = None,
        fail: Optional[Dict[str, Exception]] = None,
        revoke_fail_for: Optional[List[str]] = None,
        optional_capabilities: frozenset = frozenset(),
        config: Any = None,
    ):
        super().__init__(config or {}, provider=provider)
        self.accounts = accounts or []
        self.transactions = transactions or []
        self.fail = dict(fail or {})
        self.revoke_fail_for = set(revoke_fail_for or [])
        self.optional_capabilities = frozenset(optional_capabilities)
        self.calls: List[tuple] = []
        self.revoked: List[str] = []
        self.closed = False

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, *args))
        if operation in self.fail:
            raise self.fail[operation]

    async def connect(self, user_id: str, **params: Any) -> None:
        self._record("connect", user_id)
        self.sessions.set(user_id, f"{self.provider}-token-{user_id}")
        callback = params.get("on_connect_token_created")
        if callback:
            callback(f"{self.provider}-link-{user_id}")

    async def disconnect(self, user_id: Optional[str] = None, **params: Any) -> None:
        self._record("disconnect", user_id)
        await self.teardown_sessions(user_id, self._revoke)

    async def _revoke(self, user_id: str, token: str) -> None:
        if user_id in self.revoke_fail_for:
            raise RuntimeError(f"revoke rejected for {user_id}")
        self.revoked.append(user_id)

    async def get_accounts(self, user_id: str, **params: Any) -> List[Account]:
        self._record("get_accounts", user_id)
        return list(self.accounts)

    async def get_transactions(
        self,
        account_id: str,
        user_id: str,
        options: Optional[TransactionHistoryOptions] = None,
        **params: Any,
    ) -> List[Transaction]:
        self._record("get_transactions", account_id, user_id, options)
        return list(self.transactions)

    async def exchange_public_token(self, user_id: str, public_token: str) -> None:
        if AdapterCapability.EXCHANGE_PUBLIC_TOKEN not in self.optional_capabilities:
            return await super().exchange_public_token(user_id, public_token)
        self._record("exchange_public_token", user_id, public_token)
        self.sessions.set(user_id, f"exchanged-{public_token}")

    async def store_access_token(self, user_id: str, access_token: str) -> None:
        if AdapterCapability.STORE_ACCESS_TOKEN not in self.optional_capabilities:
            return await super().store_access_token(user_id, access_token)
        self._record("store_access_token", user_id, access_token)
        self.sessions.set(user_id, access_token)

    async def aclose(self) -> None:
        await super().aclose()
        self.closed = True


def tagged(code: ErrorCode, message: str = "tagged failure", **metadata: Any) -> PulseError:
    return PulseError(message, code, **metadata)
