import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pulse.adapters.interfaces import AdapterCapability, PulseAdapter
from pulse.adapters.registry import AdapterRegistry
from pulse.core.exceptions import ErrorCode, PulseError, wrap_errors
from pulse.domain.models import Account, Transaction, TransactionHistoryOptions
from pulse.infrastructure.error import ErrorHandler

logger = logging.getLogger(__name__)


class Pulse:
    """
    Unified entry point over every registered provider adapter.

    Each operation either targets one adapter (when ``provider`` is named)
    or fans out across all of them. Fan-out policy differs per operation:

    * ``connect`` attempts every adapter concurrently and raises the first
      failure, in registration order, once all attempts have settled.
    * ``disconnect`` and ``refresh_accounts`` attempt every adapter and only
      report failures to the error handler.
    * ``get_accounts`` merges every adapter's accounts in registration
      order; a failing adapter contributes nothing.
    * ``get_transactions`` tries adapters one by one and returns the first
      success, raising a single aggregated error if all of them fail.
    """

    def __init__(
        self,
        adapters: Iterable[PulseAdapter],
        default_provider: Optional[str] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        """
        Initialize the dispatch object.

        Args:
            adapters: Adapters to register, in order
            default_provider: Provider used when a single adapter is needed and none is named
            error_handler: Sink for failures that are reported instead of raised

        Raises:
            PulseError: CONFIGURATION_ERROR if no adapter is given or one has no provider id
        """
        adapters = list(adapters or [])
        if not adapters:
            raise PulseError("At least one adapter must be provided", ErrorCode.CONFIGURATION_ERROR)

        self.registry = AdapterRegistry(adapters)
        self.error_handler = error_handler or ErrorHandler(logger)
        self._default_provider = default_provider or None

        if self._default_provider and self._default_provider not in self.registry:
            logger.warning(
                f"Default provider '{self._default_provider}' is not registered; "
                "falling back to the first registered adapter"
            )
        logger.info(f"Pulse initialized with providers: {', '.join(self.registry.providers)}")

    @property
    def providers(self) -> List[str]:
        return self.registry.providers

    @property
    def default_provider(self) -> Optional[str]:
        return self._default_provider

    def resolve_adapter(self, provider: Optional[str] = None) -> PulseAdapter:
        """
        Pick the adapter for a single-target call.

        A named provider must be registered. Otherwise the default provider
        is used when registered, then the first registered adapter.

        Raises:
            PulseError: PROVIDER_NOT_FOUND if ``provider`` is not registered
        """
        if provider:
            return self.registry.require(provider)
        if self._default_provider and self._default_provider in self.registry:
            return self.registry.require(self._default_provider)
        adapter = self.registry.first()
        if adapter is None:
            raise PulseError("No adapters registered", ErrorCode.CONFIGURATION_ERROR)
        return adapter

    def get_capabilities(self) -> List[Dict[str, Any]]:
        """Capabilities of every registered adapter, in registration order."""
        return [
            {**adapter.get_capabilities(), "default": adapter is self.resolve_adapter()}
            for adapter in self.registry
        ]

    def _report(self, exc: BaseException, adapter: PulseAdapter, operation: str, **context: Any) -> None:
        self.error_handler.handle_error(exc, source=adapter.provider, operation=operation, context=context)

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "connect")
    async def connect(self, user_id: str, provider: Optional[str] = None, **params: Any) -> None:
        """
        Connect a user to one provider or to all of them.

        Args:
            user_id: The user to connect
            provider: Optional provider id; every adapter is connected when omitted
            **params: Extra adapter parameters, e.g. ``on_connect_token_created``

        Raises:
            PulseError: The first connection failure, in registration order
        """
        if provider:
            await self.registry.require(provider).connect(user_id=user_id, **params)
            return

        adapters = self.registry.adapters
        logger.info(f"Connecting user {user_id} to {len(adapters)} provider(s)")
        results = await asyncio.gather(
            *(adapter.connect(user_id=user_id, **params) for adapter in adapters),
            return_exceptions=True,
        )

        first_error: Optional[PulseError] = None
        for adapter, result in zip(adapters, results):
            if not isinstance(result, BaseException):
                continue
            if not isinstance(result, Exception):
                raise result
            error = PulseError.from_exception(
                result,
                ErrorCode.PROVIDER_CONNECTION_FAILED,
                f"Failed to connect to {adapter.provider}",
                provider=adapter.provider,
                user_id=user_id,
                method="connect",
            )
            if first_error is None:
                first_error = error
            else:
                self._report(error, adapter, "connect", user_id=user_id)

        if first_error is not None:
            raise first_error

    @wrap_errors(ErrorCode.PROVIDER_DISCONNECTION_FAILED, "disconnect")
    async def disconnect(
        self,
        user_id: Optional[str] = None,
        provider: Optional[str] = None,
        **params: Any,
    ) -> None:
        """
        Disconnect a user, or every user when ``user_id`` is None.

        With a named provider its failure is raised; across all providers
        failures are only reported.
        """
        if provider:
            await self.registry.require(provider).disconnect(user_id=user_id, **params)
            return

        adapters = self.registry.adapters
        results = await asyncio.gather(
            *(adapter.disconnect(user_id=user_id, **params) for adapter in adapters),
            return_exceptions=True,
        )
        self._report_failures(adapters, results, "disconnect", user_id=user_id)

    @wrap_errors(ErrorCode.ACCOUNT_FETCH_FAILED, "fetch accounts")
    async def get_accounts(self, user_id: str, provider: Optional[str] = None, **params: Any) -> List[Account]:
        """
        Fetch the user's accounts.

        Returns:
            List[Account]: One provider's accounts, or every provider's
                accounts concatenated in registration order
        """
        if provider:
            return await self.registry.require(provider).get_accounts(user_id=user_id, **params)

        adapters = self.registry.adapters
        results = await asyncio.gather(
            *(adapter.get_accounts(user_id=user_id, **params) for adapter in adapters),
            return_exceptions=True,
        )
        self._report_failures(adapters, results, "get_accounts", user_id=user_id)

        accounts: List[Account] = []
        for result in results:
            if not isinstance(result, BaseException):
                accounts.extend(result)
        logger.debug(f"Fetched {len(accounts)} account(s) for user {user_id}")
        return accounts

    @wrap_errors(ErrorCode.TRANSACTION_FETCH_FAILED, "fetch transactions")
    async def get_transactions(
        self,
        account_id: str,
        user_id: str,
        provider: Optional[str] = None,
        options: Optional[TransactionHistoryOptions] = None,
    ) -> List[Transaction]:
        """
        Fetch settled transactions for an account.

        Without a named provider, adapters are tried in registration order
        and the first success wins.

        Raises:
            PulseError: TRANSACTION_FETCH_FAILED listing every adapter's
                failure when none succeeds
        """
        if provider:
            adapter = self.registry.require(provider)
            return await adapter.get_transactions(account_id=account_id, user_id=user_id, options=options)

        errors: List[Tuple[str, PulseError]] = []
        for adapter in self.registry:
            try:
                return await adapter.get_transactions(account_id=account_id, user_id=user_id, options=options)
            except Exception as e:
                error = PulseError.from_exception(
                    e,
                    ErrorCode.TRANSACTION_FETCH_FAILED,
                    "Failed to fetch transactions",
                    provider=adapter.provider,
                    user_id=user_id,
                    account_id=account_id,
                    method="get_transactions",
                )
                self._report(error, adapter, "get_transactions", user_id=user_id, account_id=account_id)
                errors.append((adapter.provider, error))

        summary = "; ".join(f"{name}: {error.message}" for name, error in errors)
        raise PulseError(
            f"Failed to fetch transactions from all providers: {summary}",
            ErrorCode.TRANSACTION_FETCH_FAILED,
            user_id=user_id,
            account_id=account_id,
            method="get_transactions",
            details={
                "errors": [
                    {"provider": name, "code": error.code.value, "message": error.message}
                    for name, error in errors
                ]
            },
        )

    @wrap_errors(ErrorCode.ACCOUNT_REFRESH_FAILED, "refresh accounts")
    async def refresh_accounts(self, user_id: str, provider: Optional[str] = None, **params: Any) -> None:
        """Refresh the user's accounts with one provider, or best-effort with all of them."""
        if provider:
            await self.registry.require(provider).refresh_accounts(user_id=user_id, **params)
            return

        adapters = self.registry.adapters
        results = await asyncio.gather(
            *(adapter.refresh_accounts(user_id=user_id, **params) for adapter in adapters),
            return_exceptions=True,
        )
        self._report_failures(adapters, results, "refresh_accounts", user_id=user_id)

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "exchange public token")
    async def exchange_public_token(
        self,
        user_id: str,
        public_token: str,
        provider: Optional[str] = None,
    ) -> None:
        """
        Exchange a public token for an access token on a provider that supports it.

        Raises:
            PulseError: METHOD_NOT_SUPPORTED if the resolved adapter lacks the capability
        """
        adapter = self._require_capability(provider, AdapterCapability.EXCHANGE_PUBLIC_TOKEN, user_id)
        await adapter.exchange_public_token(user_id=user_id, public_token=public_token)

    @wrap_errors(ErrorCode.PROVIDER_CONNECTION_FAILED, "store access token")
    async def store_access_token(
        self,
        user_id: str,
        access_token: str,
        provider: Optional[str] = None,
    ) -> None:
        """
        Hand a provider-issued access token to the adapter that supports direct storage.

        Raises:
            PulseError: METHOD_NOT_SUPPORTED if the resolved adapter lacks the capability
        """
        adapter = self._require_capability(provider, AdapterCapability.STORE_ACCESS_TOKEN, user_id)
        await adapter.store_access_token(user_id=user_id, access_token=access_token)

    def _require_capability(
        self,
        provider: Optional[str],
        capability: AdapterCapability,
        user_id: Optional[str],
    ) -> PulseAdapter:
        adapter = self.resolve_adapter(provider)
        if not adapter.supports(capability):
            raise PulseError(
                f"Provider {adapter.provider} does not support {capability.value}",
                ErrorCode.METHOD_NOT_SUPPORTED,
                provider=adapter.provider,
                user_id=user_id,
                method=capability.value,
            )
        return adapter

    def _report_failures(
        self,
        adapters: List[PulseAdapter],
        results: List[Any],
        operation: str,
        **context: Any,
    ) -> None:
        for adapter, result in zip(adapters, results):
            if isinstance(result, Exception):
                self._report(result, adapter, operation, **context)
            elif isinstance(result, BaseException):
                raise result

    async def aclose(self) -> None:
        """Close every adapter, reporting failures instead of raising them."""
        adapters = self.registry.adapters
        results = await asyncio.gather(*(adapter.aclose() for adapter in adapters), return_exceptions=True)
        self._report_failures(adapters, results, "aclose")

    async def __aenter__(self) -> "Pulse":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"Pulse(providers={self.providers!r}, default_provider={self._default_provider!r})"
