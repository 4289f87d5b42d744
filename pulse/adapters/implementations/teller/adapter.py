import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
from pydantic import TypeAdapter, model_validator

from pulse.adapters.interfaces import (
    AdapterCapability,
    AdapterConfig,
    APIConnector,
    HttpMethod,
    PulseAdapter,
)
from pulse.adapters.implementations.teller.schemas import (
    TellerAccount,
    TellerConnectResponse,
    TellerTransaction,
)
from pulse.core.exceptions import ErrorCode, PulseError, wrap_errors
from pulse.domain.models import (
    Account,
    AccountType,
    Transaction,
    TransactionHistoryOptions,
)

logger = logging.getLogger(__name__)

TELLER_API_URL = "https://api.teller.io"

_accounts_adapter = TypeAdapter(List[TellerAccount])
_transactions_adapter = TypeAdapter(List[TellerTransaction])


class TellerAdapterConfig(AdapterConfig):
    """Teller settings. Production access needs the mTLS certificate pair."""

    webhook_url: Optional[str] = None
    products: List[str] = ["transactions", "balance", "identity"]
    certificate: Optional[str] = None
    private_key: Optional[str] = None

    @model_validator(mode="after")
    def check_credentials(self) -> "TellerAdapterConfig":
        if not self.api_key:
            raise ValueError("Teller API key is required")
        if bool(self.certificate) != bool(self.private_key):
            raise ValueError("Teller certificate and private key must be provided together")
        return self


class TellerAdapter(PulseAdapter):
    """
    Integration with Teller's financial data APIs.

    Teller Connect hands the access token straight to the client, which
    passes it back through ``store_access_token``.
    """

    PROVIDER = "teller"
    config_class = TellerAdapterConfig
    optional_capabilities = frozenset({AdapterCapability.STORE_ACCESS_TOKEN})

    ACCOUNT_TYPES = {
        "depository": AccountType.CHECKING,
        "credit": AccountType.CREDIT,
        "investment": AccountType.INVESTMENT,
        "loan": AccountType.LOAN,
        "mortgage": AccountType.LOAN,
        "savings": AccountType.SAVINGS,
    }

    def __init__(
        self,
        config: Any = None,
        provider: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(config, provider)
        cert = None
        if self.config.certificate and self.config.private_key:
            cert = (self.config.certificate, self.config.private_key)
        self.connector = APIConnector(
            self.config.base_url or TELLER_API_URL,
            config=self.config.request_config(),
            headers={"Content-Type": "application/json"},
            http_client=http_client,
            cert=cert,
        )

    @property
    def _bearer(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "store access token")
    async def store_access_token(self, user_id: str, access_token: str) -> None:
        """
        Stores the access token received after authentication with Teller Connect.

        Args:
            user_id: The user ID associated with the token
            access_token: The access token received from Teller Connect
        """
        self.require_user_id(user_id)
        if not access_token:
            raise PulseError(
                "Access token is required",
                ErrorCode.VALIDATION_ERROR,
                provider=self.provider,
                user_id=user_id,
            )
        self.sessions.set(user_id, access_token)
        logger.info(f"Stored Teller access token for user {user_id}")

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "connect to Teller")
    async def connect(self, user_id: str, **params: Any) -> None:
        """Creates a Teller Connect token for the user."""
        self.require_user_id(user_id)
        data = await self.connector.request(
            HttpMethod.POST,
            "/connect/token",
            json={"user_id": user_id, "products": self.config.products},
            headers=self._bearer,
        )
        response = TellerConnectResponse.model_validate(data)
        self.deliver_connect_token(user_id, response.connect_token, params.get("on_connect_token_created"))

    @wrap_errors(ErrorCode.PROVIDER_DISCONNECTION_FAILED, "disconnect from Teller")
    async def disconnect(self, user_id: Optional[str] = None, **params: Any) -> None:
        await self.teardown_sessions(user_id, self._revoke_token)

    async def _revoke_token(self, user_id: str, access_token: str) -> None:
        await self.connector.request(
            HttpMethod.POST,
            "/connect/token/revoke",
            json={"token": access_token},
            headers=self._bearer,
        )

    @wrap_errors(ErrorCode.ACCOUNT_FETCH_FAILED, "fetch accounts")
    async def get_accounts(self, user_id: str, **params: Any) -> List[Account]:
        self.require_user_id(user_id)
        access_token = self.require_session(user_id)

        data = await self.connector.request(HttpMethod.GET, "/accounts", auth=(access_token, ""))
        accounts = _accounts_adapter.validate_python(data)
        return [self._normalize_account(account) for account in accounts]

    @wrap_errors(ErrorCode.TRANSACTION_FETCH_FAILED, "fetch transactions")
    async def get_transactions(
        self,
        account_id: str,
        user_id: str,
        options: Optional[TransactionHistoryOptions] = None,
        **params: Any,
    ) -> List[Transaction]:
        self.require_user_id(user_id, account_id)
        access_token = self.require_session(user_id, account_id)

        data = await self.connector.request(
            HttpMethod.GET,
            f"/accounts/{account_id}/transactions",
            auth=(access_token, ""),
        )
        transactions = _transactions_adapter.validate_python(data)

        # Only settled transactions are reported
        settled = [self._normalize_transaction(t) for t in transactions if t.status != "pending"]
        return options.apply(settled) if options else settled

    def _map_account_type(self, account: TellerAccount) -> AccountType:
        if account.subtype and account.subtype.lower() in ("savings", "money_market"):
            return AccountType.SAVINGS
        return self.ACCOUNT_TYPES.get(account.type.lower(), AccountType.OTHER)

    def _normalize_account(self, account: TellerAccount) -> Account:
        balance = account.balances.current or account.balances.ledger or account.balances.available or "0"
        return Account(
            id=account.id,
            name=account.name,
            type=self._map_account_type(account),
            balance=Decimal(balance),
            currency=account.currency,
            last_updated=_parse_timestamp(account.last_updated),
            metadata={
                "institution": account.institution.model_dump(),
                "enrollment_id": account.enrollment_id,
                "status": account.status,
                "subtype": account.subtype,
                "links": account.links.model_dump(by_alias=True),
            },
        )

    def _normalize_transaction(self, transaction: TellerTransaction) -> Transaction:
        return Transaction.from_signed_amount(
            Decimal(transaction.amount),
            id=transaction.id,
            account_id=transaction.account_id,
            # Teller only covers US institutions
            currency="USD",
            description=transaction.description,
            category=transaction.details.category,
            date=date.fromisoformat(transaction.date),
            metadata={
                "status": transaction.status,
                "type": transaction.type,
                "running_balance": transaction.running_balance,
                "details": transaction.details.model_dump(),
                "links": transaction.links.model_dump(by_alias=True),
            },
        )

    async def aclose(self) -> None:
        await super().aclose()
        await self.connector.aclose()


def _parse_timestamp(value: str) -> datetime:
    """Teller sends either a date or an ISO timestamp."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        parsed = datetime.combine(date.fromisoformat(value), datetime.min.time())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
