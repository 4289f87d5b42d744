import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
from pydantic import model_validator

from pulse.adapters.interfaces import (
    AdapterCapability,
    AdapterConfig,
    APIConnector,
    Environment,
    HttpMethod,
    PulseAdapter,
)
from pulse.adapters.implementations.plaid.schemas import (
    PlaidAccount,
    PlaidAccountsResponse,
    PlaidExchangeTokenResponse,
    PlaidLinkTokenResponse,
    PlaidTransaction,
    PlaidTransactionsResponse,
)
from pulse.core.exceptions import ErrorCode, PulseError, wrap_errors
from pulse.domain.models import (
    Account,
    AccountType,
    Transaction,
    TransactionHistoryOptions,
)

logger = logging.getLogger(__name__)

PLAID_ENVIRONMENTS = {
    Environment.SANDBOX: "https://sandbox.plaid.com",
    Environment.DEVELOPMENT: "https://development.plaid.com",
    Environment.PRODUCTION: "https://production.plaid.com",
}

DEFAULT_HISTORY_DAYS = 30
DEFAULT_TRANSACTION_COUNT = 100


class PlaidAdapterConfig(AdapterConfig):
    """Plaid credentials: ``client_id`` plus ``api_key`` (the Plaid secret)."""

    webhook_url: Optional[str] = None
    client_name: str = "Pulse"
    products: List[str] = ["transactions"]
    country_codes: List[str] = ["US"]
    language: str = "en"

    @model_validator(mode="after")
    def check_credentials(self) -> "PlaidAdapterConfig":
        if not self.api_key:
            raise ValueError("Plaid API key is required")
        if not self.client_id:
            raise ValueError("Plaid client ID is required")
        return self


class PlaidAdapter(PulseAdapter):
    """
    Integration with Plaid's financial data APIs.

    Plaid uses a two step handshake: ``connect`` creates a Link token for the
    client-side Plaid Link UI, then ``exchange_public_token`` swaps the
    public token Link returns for a long-lived access token.
    """

    PROVIDER = "plaid"
    config_class = PlaidAdapterConfig
    optional_capabilities = frozenset({AdapterCapability.EXCHANGE_PUBLIC_TOKEN})

    ACCOUNT_TYPES = {
        "depository": AccountType.CHECKING,
        "credit": AccountType.CREDIT,
        "investment": AccountType.INVESTMENT,
        "brokerage": AccountType.INVESTMENT,
        "loan": AccountType.LOAN,
        "mortgage": AccountType.LOAN,
    }

    def __init__(
        self,
        config: Any = None,
        provider: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(config, provider)
        base_url = self.config.base_url or PLAID_ENVIRONMENTS[self.config.environment]
        self.connector = APIConnector(
            base_url,
            config=self.config.request_config(),
            headers={
                "PLAID-CLIENT-ID": self.config.client_id,
                "PLAID-SECRET": self.config.api_key,
            },
            http_client=http_client,
        )
        logger.info(f"Initialized Plaid adapter ({self.config.environment.value})")

    async def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self.connector.request(HttpMethod.POST, path, json=payload)

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "exchange public token")
    async def exchange_public_token(self, user_id: str, public_token: str) -> None:
        """
        Exchanges a public token for an access token after user authentication.

        Args:
            user_id: The user ID associated with the token
            public_token: The public token received from Plaid Link

        Raises:
            PulseError: If the token exchange fails
        """
        self.require_user_id(user_id)
        data = await self._post("/item/public_token/exchange", {"public_token": public_token})
        response = PlaidExchangeTokenResponse.model_validate(data)
        self.sessions.set(user_id, response.access_token)
        logger.info(f"Stored Plaid access token for user {user_id} (item {response.item_id})")

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "connect to Plaid")
    async def connect(self, user_id: str, **params: Any) -> None:
        """
        Creates a Link token for the user.

        The token is handed to ``on_connect_token_created`` when provided.
        """
        self.require_user_id(user_id)
        payload: Dict[str, Any] = {
            "user": {"client_user_id": user_id},
            "client_name": self.config.client_name,
            "products": self.config.products,
            "country_codes": self.config.country_codes,
            "language": self.config.language,
        }
        if self.config.webhook_url:
            payload["webhook"] = self.config.webhook_url

        data = await self._post("/link/token/create", payload)
        response = PlaidLinkTokenResponse.model_validate(data)
        self.deliver_connect_token(user_id, response.link_token, params.get("on_connect_token_created"))

    @wrap_errors(ErrorCode.PROVIDER_DISCONNECTION_FAILED, "disconnect from Plaid")
    async def disconnect(self, user_id: Optional[str] = None, **params: Any) -> None:
        """Removes the Plaid item for one user, or for every connected user."""
        await self.teardown_sessions(user_id, self._remove_item)

    async def _remove_item(self, user_id: str, access_token: str) -> None:
        await self._post("/item/remove", {"access_token": access_token})

    @wrap_errors(ErrorCode.ACCOUNT_FETCH_FAILED, "fetch accounts")
    async def get_accounts(self, user_id: str, **params: Any) -> List[Account]:
        self.require_user_id(user_id)
        access_token = self.require_session(user_id)

        data = await self._post("/accounts/get", {"access_token": access_token})
        response = PlaidAccountsResponse.model_validate(data)
        fetched_at = datetime.now(timezone.utc)
        return [self._normalize_account(account, fetched_at) for account in response.accounts]

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
        options = options or TransactionHistoryOptions()
        if options.limit == 0:
            return []

        end_date = options.end_date or date.today()
        start_date = options.start_date or end_date - timedelta(days=DEFAULT_HISTORY_DAYS)

        data = await self._post(
            "/transactions/get",
            {
                "access_token": access_token,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "options": {
                    "account_ids": [account_id],
                    "count": DEFAULT_TRANSACTION_COUNT if options.limit is None else options.limit,
                    "offset": options.offset or 0,
                },
            },
        )
        response = PlaidTransactionsResponse.model_validate(data)

        # Only settled transactions are reported
        settled = [t for t in response.transactions if not t.pending]
        return [self._normalize_transaction(t) for t in settled]

    def _map_account_type(self, plaid_type: str, subtype: Optional[str]) -> AccountType:
        """Maps Plaid account types to normalized account types."""
        plaid_type = plaid_type.lower()
        if plaid_type == "depository" and (subtype or "").lower() == "savings":
            return AccountType.SAVINGS
        return self.ACCOUNT_TYPES.get(plaid_type, AccountType.OTHER)

    def _normalize_account(self, account: PlaidAccount, fetched_at: datetime) -> Account:
        balances = account.balances
        balance = balances.current if balances.current is not None else balances.available
        return Account(
            id=account.account_id,
            name=account.name,
            type=self._map_account_type(account.type, account.subtype),
            balance=Decimal(str(balance or 0)),
            currency=balances.iso_currency_code or "USD",
            last_updated=fetched_at,
            metadata={
                "mask": account.mask,
                "official_name": account.official_name,
                "subtype": account.subtype,
                "verification_status": account.verification_status,
                "available_balance": balances.available,
            },
        )

    def _normalize_transaction(self, transaction: PlaidTransaction) -> Transaction:
        # Plaid reports money leaving the account as a positive amount
        return Transaction.from_signed_amount(
            Decimal(str(transaction.amount)),
            outflow_is_negative=False,
            id=transaction.transaction_id,
            account_id=transaction.account_id,
            currency=transaction.iso_currency_code or "USD",
            description=transaction.name,
            category=transaction.category[0] if transaction.category else None,
            date=date.fromisoformat(transaction.date),
            metadata={
                "merchant_name": transaction.merchant_name,
                "payment_channel": transaction.payment_channel,
                "location": transaction.location.model_dump() if transaction.location else None,
                "categories": transaction.category,
                "original_description": transaction.original_description,
                "authorized_date": transaction.authorized_date,
            },
        )

    async def aclose(self) -> None:
        await super().aclose()
        await self.connector.aclose()
