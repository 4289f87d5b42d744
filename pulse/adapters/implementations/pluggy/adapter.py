import asyncio
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
    HttpMethod,
    PulseAdapter,
)
from pulse.adapters.implementations.pluggy.schemas import (
    PluggyAccount,
    PluggyAccountsPage,
    PluggyAuthResponse,
    PluggyConnectTokenResponse,
    PluggyTransaction,
    PluggyTransactionsPage,
)
from pulse.core.exceptions import ErrorCode, ProviderAPIError, PulseError, wrap_errors
from pulse.domain.models import (
    Account,
    AccountType,
    Transaction,
    TransactionHistoryOptions,
)

logger = logging.getLogger(__name__)

PLUGGY_API_URL = "https://api.pluggy.ai"

DEFAULT_HISTORY_DAYS = 30
DEFAULT_PAGE_SIZE = 500


class PluggyAdapterConfig(AdapterConfig):
    """Pluggy credentials: ``client_id`` plus ``client_secret`` (``api_key`` is accepted too)."""

    webhook_url: Optional[str] = None

    @model_validator(mode="after")
    def check_credentials(self) -> "PluggyAdapterConfig":
        if not self.client_id:
            raise ValueError("Pluggy client ID is required")
        if not (self.client_secret or self.api_key):
            raise ValueError("Pluggy client secret is required")
        return self

    @property
    def secret(self) -> str:
        return self.client_secret or self.api_key or ""


class PluggyAdapter(PulseAdapter):
    """
    Integration with Pluggy's open finance APIs.

    ``connect`` issues a Pluggy Connect token for the widget. Once the user
    finishes, the widget yields an item id which is handed back through
    ``store_access_token`` and acts as the session for that user.
    """

    PROVIDER = "pluggy"
    config_class = PluggyAdapterConfig
    optional_capabilities = frozenset({AdapterCapability.STORE_ACCESS_TOKEN})

    ACCOUNT_TYPES = {
        "BANK": AccountType.CHECKING,
        "CREDIT": AccountType.CREDIT,
        "INVESTMENT": AccountType.INVESTMENT,
        "LOAN": AccountType.LOAN,
    }

    def __init__(
        self,
        config: Any = None,
        provider: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(config, provider)
        self.connector = APIConnector(
            self.config.base_url or PLUGGY_API_URL,
            config=self.config.request_config(),
            headers={"Content-Type": "application/json"},
            http_client=http_client,
        )
        self._api_key: Optional[str] = None
        self._auth_lock = asyncio.Lock()

    async def _get_api_key(self) -> str:
        """Return the cached API key, authenticating on first use."""
        if self._api_key:
            return self._api_key

        async with self._auth_lock:
            if not self._api_key:
                data = await self.connector.request(
                    HttpMethod.POST,
                    "/auth",
                    json={"clientId": self.config.client_id, "clientSecret": self.config.secret},
                )
                self._api_key = PluggyAuthResponse.model_validate(data).api_key
                logger.debug("Obtained Pluggy API key")
        return self._api_key

    async def _request(self, method: HttpMethod, path: str, **kwargs: Any) -> Any:
        """Authenticated request; a rejected key is refreshed once."""
        api_key = await self._get_api_key()
        try:
            return await self.connector.request(method, path, headers={"X-API-KEY": api_key}, **kwargs)
        except ProviderAPIError as e:
            if e.status_code not in (401, 403):
                raise
            logger.info("Pluggy API key rejected, re-authenticating")
            self._api_key = None
            api_key = await self._get_api_key()
            return await self.connector.request(method, path, headers={"X-API-KEY": api_key}, **kwargs)

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "store access token")
    async def store_access_token(self, user_id: str, access_token: str) -> None:
        """
        Stores the item id produced by the Pluggy Connect widget.

        Args:
            user_id: The user ID associated with the item
            access_token: The Pluggy item id
        """
        self.require_user_id(user_id)
        if not access_token:
            raise PulseError(
                "Item id is required",
                ErrorCode.VALIDATION_ERROR,
                provider=self.provider,
                user_id=user_id,
            )
        self.sessions.set(user_id, access_token)

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "connect to Pluggy")
    async def connect(self, user_id: str, **params: Any) -> None:
        self.require_user_id(user_id)
        payload: Dict[str, Any] = {"clientUserId": user_id}
        if self.config.webhook_url:
            payload["webhookUrl"] = self.config.webhook_url
        item_id = params.get("item_id") or self.sessions.get(user_id)
        if item_id:
            # Reconnecting an existing item updates its credentials
            payload["itemId"] = item_id

        data = await self._request(HttpMethod.POST, "/connect_token", json=payload)
        response = PluggyConnectTokenResponse.model_validate(data)
        self.deliver_connect_token(user_id, response.access_token, params.get("on_connect_token_created"))

    @wrap_errors(ErrorCode.PROVIDER_DISCONNECTION_FAILED, "disconnect from Pluggy")
    async def disconnect(self, user_id: Optional[str] = None, **params: Any) -> None:
        await self.teardown_sessions(user_id, self._delete_item)

    async def _delete_item(self, user_id: str, item_id: str) -> None:
        await self._request(HttpMethod.DELETE, f"/items/{item_id}")

    @wrap_errors(ErrorCode.ACCOUNT_FETCH_FAILED, "fetch accounts")
    async def get_accounts(self, user_id: str, **params: Any) -> List[Account]:
        self.require_user_id(user_id)
        item_id = self.require_session(user_id)

        data = await self._request(HttpMethod.GET, "/accounts", params={"itemId": item_id})
        page = PluggyAccountsPage.model_validate(data)
        fetched_at = datetime.now(timezone.utc)
        return [self._normalize_account(account, fetched_at) for account in page.results]

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
        options = options or TransactionHistoryOptions()
        if options.limit == 0:
            return []

        end_date = options.end_date or date.today()
        start_date = options.start_date or end_date - timedelta(days=DEFAULT_HISTORY_DAYS)
        page_size = DEFAULT_PAGE_SIZE if options.limit is None else options.limit
        offset = options.offset or 0

        # Pages are fixed-size; an unaligned offset spills into the next page
        skip = offset % page_size
        page_number = offset // page_size + 1
        rows: List[PluggyTransaction] = []
        while True:
            page = await self._fetch_transactions_page(account_id, start_date, end_date, page_size, page_number)
            rows.extend(page.results)
            exhausted = len(page.results) < page_size or (
                page.total_pages is not None and page_number >= page.total_pages
            )
            if exhausted or len(rows) >= skip + page_size:
                break
            page_number += 1

        window = rows[skip:skip + page_size]
        settled = [t for t in window if "PENDING" not in (t.status or "").upper()]
        return [self._normalize_transaction(t) for t in settled]

    async def _fetch_transactions_page(
        self,
        account_id: str,
        start_date: date,
        end_date: date,
        page_size: int,
        page_number: int,
    ) -> PluggyTransactionsPage:
        data = await self._request(
            HttpMethod.GET,
            "/transactions",
            params={
                "accountId": account_id,
                "from": start_date.isoformat(),
                "to": end_date.isoformat(),
                "pageSize": page_size,
                "page": page_number,
            },
        )
        return PluggyTransactionsPage.model_validate(data)

    def _map_account_type(self, account: PluggyAccount) -> AccountType:
        if account.type.upper() == "BANK" and (account.subtype or "").upper() == "SAVINGS_ACCOUNT":
            return AccountType.SAVINGS
        return self.ACCOUNT_TYPES.get(account.type.upper(), AccountType.OTHER)

    def _normalize_account(self, account: PluggyAccount, fetched_at: datetime) -> Account:
        return Account(
            id=account.id,
            name=account.name,
            type=self._map_account_type(account),
            balance=Decimal(str(account.balance)),
            currency=account.currency_code or "USD",
            last_updated=account.updated_at or fetched_at,
            metadata={
                "item_id": account.item_id,
                "subtype": account.subtype,
                "number": account.number,
                "marketing_name": account.marketing_name,
                "owner": account.owner,
            },
        )

    def _normalize_transaction(self, transaction: PluggyTransaction) -> Transaction:
        return Transaction.from_signed_amount(
            Decimal(str(transaction.amount)),
            id=transaction.id,
            account_id=transaction.account_id,
            currency=transaction.currency_code or "USD",
            description=transaction.description,
            category=transaction.category,
            date=transaction.date.date(),
            metadata={
                "status": transaction.status,
                "type": transaction.type,
                "balance": transaction.balance,
                "description_raw": transaction.description_raw,
            },
        )

    async def aclose(self) -> None:
        await super().aclose()
        self._api_key = None
        await self.connector.aclose()
