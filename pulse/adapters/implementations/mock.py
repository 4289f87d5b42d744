import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, List, Optional

from pulse.adapters.interfaces import AdapterCapability, PulseAdapter
from pulse.core.exceptions import ErrorCode, wrap_errors
from pulse.domain.models import (
    Account,
    AccountType,
    Transaction,
    TransactionHistoryOptions,
    TransactionType,
)

logger = logging.getLogger(__name__)


class MockAdapter(PulseAdapter):
    """
    In-memory adapter returning fixed data for connected users.

    Used by the example service and for local development. It needs no
    credentials and makes no network calls.
    """

    PROVIDER = "mock"
    optional_capabilities = frozenset({AdapterCapability.STORE_ACCESS_TOKEN})

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "connect to mock provider")
    async def connect(self, user_id: str, **params: Any) -> None:
        self.require_user_id(user_id)
        self.sessions.set(user_id, f"mock-access-{uuid.uuid4().hex}")
        self.deliver_connect_token(user_id, f"mock-link-{user_id}", params.get("on_connect_token_created"))

    @wrap_errors(ErrorCode.PROVIDER_DISCONNECTION_FAILED, "disconnect from mock provider")
    async def disconnect(self, user_id: Optional[str] = None, **params: Any) -> None:
        await self.teardown_sessions(user_id, self._revoke)

    async def _revoke(self, user_id: str, token: str) -> None:
        logger.debug(f"Revoked mock session for user {user_id}")

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "store access token")
    async def store_access_token(self, user_id: str, access_token: str) -> None:
        self.require_user_id(user_id)
        self.sessions.set(user_id, access_token)

    @wrap_errors(ErrorCode.ACCOUNT_FETCH_FAILED, "fetch accounts")
    async def get_accounts(self, user_id: str, **params: Any) -> List[Account]:
        self.require_user_id(user_id)
        self.require_session(user_id)
        now = datetime.now(timezone.utc)
        return [
            Account(
                id="mock-checking-1",
                name="Mock Checking Account",
                type=AccountType.CHECKING,
                balance=Decimal("1500.50"),
                currency="USD",
                last_updated=now,
            ),
            Account(
                id="mock-savings-1",
                name="Mock Savings Account",
                type=AccountType.SAVINGS,
                balance=Decimal("5000.75"),
                currency="USD",
                last_updated=now,
            ),
        ]

    @wrap_errors(ErrorCode.TRANSACTION_FETCH_FAILED, "fetch transactions")
    async def get_transactions(
        self,
        account_id: str,
        user_id: str,
        options: Optional[TransactionHistoryOptions] = None,
        **params: Any,
    ) -> List[Transaction]:
        self.require_user_id(user_id, account_id)
        self.require_session(user_id, account_id)
        today = date.today()
        raw = [
            ("mock-tx-1", Decimal("50.00"), "Coffee Shop", "Food & Drink", TransactionType.DEBIT, 1, False),
            ("mock-tx-2", Decimal("2500.00"), "Salary Deposit", "Income", TransactionType.CREDIT, 2, False),
            ("mock-tx-3", Decimal("12.99"), "Streaming Subscription", "Entertainment", TransactionType.DEBIT, 0, True),
        ]
        transactions = [
            Transaction(
                id=tx_id,
                account_id=account_id,
                amount=amount,
                currency="USD",
                description=description,
                category=category,
                type=tx_type,
                date=today - timedelta(days=days_ago),
            )
            for tx_id, amount, description, category, tx_type, days_ago, pending in raw
            if not pending
        ]
        return options.apply(transactions) if options else transactions
