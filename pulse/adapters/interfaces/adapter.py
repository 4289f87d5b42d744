from abc import ABC, abstractmethod
from typing import (
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Dict,
    FrozenSet,
    List,
    Optional,
    Tuple,
    Type,
    Union,
)
from enum import Enum
import logging

from pydantic import BaseModel, ConfigDict, ValidationError

from pulse.adapters.interfaces.connector import RequestConfig
from pulse.adapters.interfaces.session import SessionStore
from pulse.core.exceptions import ErrorCode, PulseError, wrap_errors
from pulse.domain.models import Account, Transaction, TransactionHistoryOptions

logger = logging.getLogger(__name__)

ConnectTokenCallback = Callable[[str], Any]


class AdapterCapability(str, Enum):
    """Operations an adapter may support."""
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    ACCOUNTS = "accounts"
    TRANSACTIONS = "transactions"
    REFRESH = "refresh"
    EXCHANGE_PUBLIC_TOKEN = "exchange_public_token"
    STORE_ACCESS_TOKEN = "store_access_token"


BASE_CAPABILITIES: FrozenSet[AdapterCapability] = frozenset({
    AdapterCapability.CONNECT,
    AdapterCapability.DISCONNECT,
    AdapterCapability.ACCOUNTS,
    AdapterCapability.TRANSACTIONS,
    AdapterCapability.REFRESH,
})


class Environment(str, Enum):
    """Provider environments."""
    SANDBOX = "sandbox"
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class AdapterConfig(BaseModel):
    """
    Configuration shared by every adapter.

    Provider-specific adapters subclass this to declare their own keys;
    undeclared keys are kept and remain readable through
    ``PulseAdapter.get_config_value``.
    """

    model_config = ConfigDict(extra="allow")

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    environment: Environment = Environment.SANDBOX
    debug: bool = False
    timeout: float = 10.0
    max_retries: int = 3
    retry_backoff_factor: float = 0.3

    def request_config(self) -> RequestConfig:
        return RequestConfig(
            max_retries=self.max_retries,
            timeout=self.timeout,
            backoff_factor=self.retry_backoff_factor,
        )


class PulseAdapter(ABC):
    """
    Abstract base for provider adapters.

    Every adapter translates one external financial-data API into the
    normalized model. Subclasses implement the base capability set
    (connect, disconnect, accounts, transactions); refresh defaults to
    disconnect followed by connect. Token exchange and direct token
    storage are optional capabilities advertised through
    ``optional_capabilities``.
    """

    PROVIDER: ClassVar[str] = ""
    config_class: ClassVar[Type[AdapterConfig]] = AdapterConfig
    optional_capabilities: ClassVar[FrozenSet[AdapterCapability]] = frozenset()

    def __init__(
        self,
        config: Union[AdapterConfig, Dict[str, Any], None] = None,
        provider: Optional[str] = None,
    ):
        """
        Initialize the adapter.

        Args:
            config: Adapter configuration, as a model or a plain dictionary
            provider: Registry key overriding the class default ``PROVIDER``

        Raises:
            PulseError: CONFIGURATION_ERROR if the configuration is invalid
        """
        self.provider = provider or self.PROVIDER
        try:
            if isinstance(config, self.config_class):
                self.config = config
            elif isinstance(config, AdapterConfig):
                self.config = self.config_class.model_validate(config.model_dump())
            else:
                self.config = self.config_class.model_validate(config or {})
        except ValidationError as e:
            raise PulseError(
                f"Invalid {self.provider or type(self).__name__} configuration: {e}",
                ErrorCode.CONFIGURATION_ERROR,
                provider=self.provider or None,
            ) from e
        self.sessions = SessionStore(self.provider)

    @property
    def capabilities(self) -> FrozenSet[AdapterCapability]:
        return BASE_CAPABILITIES | self.optional_capabilities

    def supports(self, capability: AdapterCapability) -> bool:
        """Check whether this adapter implements ``capability``."""
        return capability in self.capabilities

    def get_capabilities(self) -> Dict[str, Any]:
        """
        Returns the capabilities supported by this adaptor.

        Returns:
            Dict[str, Any]: Provider id, sorted capability names and the
                number of active sessions
        """
        return {
            "provider": self.provider,
            "capabilities": sorted(c.value for c in self.capabilities),
            "active_sessions": len(self.sessions),
        }

    def get_config_value(self, key: str, default: Any = None) -> Any:
        """Read a declared or extra configuration key."""
        if key in type(self.config).model_fields:
            value = getattr(self.config, key)
            return default if value is None else value
        return (self.config.model_extra or {}).get(key, default)

    def require_user_id(self, user_id: Optional[str], account_id: Optional[str] = None) -> str:
        """Raise VALIDATION_ERROR when a user ID is missing."""
        if not user_id:
            raise PulseError(
                "User ID is required",
                ErrorCode.VALIDATION_ERROR,
                provider=self.provider,
                account_id=account_id,
            )
        return user_id

    def require_session(self, user_id: str, account_id: Optional[str] = None) -> str:
        """Return the stored token for ``user_id`` or fail if not connected."""
        token = self.sessions.get(user_id)
        if not token:
            raise PulseError(
                f"Not connected to {self.provider} for user {user_id}",
                ErrorCode.PROVIDER_CONNECTION_FAILED,
                provider=self.provider,
                user_id=user_id,
                account_id=account_id,
            )
        return token

    def deliver_connect_token(
        self,
        user_id: str,
        token: str,
        callback: Optional[ConnectTokenCallback],
    ) -> None:
        """Hand a client-facing linking token to the caller's callback."""
        if callable(callback):
            callback(token)
        else:
            logger.warning(
                f"{self.provider} link token created for user {user_id}, "
                "but no callback was provided to handle it"
            )

    async def teardown_sessions(
        self,
        user_id: Optional[str],
        revoke: Callable[[str, str], Awaitable[None]],
    ) -> None:
        """
        Remove one or every session, revoking each token remotely.

        The local token is always dropped before the remote revoke runs, so
        local state is clean even when the provider call fails. With no
        ``user_id`` every known session is torn down; all revokes are
        attempted and failures are reported together afterwards.

        Args:
            user_id: User to disconnect, or None for every session
            revoke: Coroutine performing the remote revoke for (user_id, token)

        Raises:
            PulseError: PROVIDER_DISCONNECTION_FAILED if any remote revoke failed
        """
        user_ids = [user_id] if user_id else self.sessions.user_ids()
        failures: List[Tuple[str, str]] = []

        for uid in user_ids:
            token = self.sessions.pop(uid)
            if token is None:
                continue
            try:
                await revoke(uid, token)
            except Exception as e:
                logger.warning(f"Failed to revoke {self.provider} session for user {uid}: {e}")
                failures.append((uid, str(e)))

        if failures:
            summary = "; ".join(f"{uid}: {reason}" for uid, reason in failures)
            raise PulseError(
                f"Failed to revoke {len(failures)} {self.provider} session(s): {summary}",
                ErrorCode.PROVIDER_DISCONNECTION_FAILED,
                provider=self.provider,
                user_id=user_id,
                method="disconnect",
                details={"failed_users": [uid for uid, _ in failures]},
            )

    @abstractmethod
    async def connect(self, user_id: str, **params: Any) -> None:
        """
        Establishes a session for a user with the provider.

        Args:
            user_id: The user to connect
            **params: Provider-specific extras, e.g. ``on_connect_token_created``

        Raises:
            PulseError: PROVIDER_CONNECTION_FAILED on transport or validation problems
        """

    @abstractmethod
    async def disconnect(self, user_id: Optional[str] = None, **params: Any) -> None:
        """
        Tears down the user's session, or every session when ``user_id`` is None.

        Local session state is removed even if the remote revoke fails.
        """

    @abstractmethod
    async def get_accounts(self, user_id: str, **params: Any) -> List[Account]:
        """
        Returns the user's accounts in normalized form.

        Raises:
            PulseError: ACCOUNT_FETCH_FAILED if not connected or the upstream call fails
        """

    @abstractmethod
    async def get_transactions(
        self,
        account_id: str,
        user_id: str,
        options: Optional[TransactionHistoryOptions] = None,
        **params: Any,
    ) -> List[Transaction]:
        """
        Returns settled transactions for an account; pending ones are dropped.

        Raises:
            PulseError: TRANSACTION_FETCH_FAILED if the upstream call fails
        """

    @wrap_errors(ErrorCode.ACCOUNT_REFRESH_FAILED, "refresh accounts")
    async def refresh_accounts(self, user_id: str, **params: Any) -> None:
        """Refresh by reconnecting: disconnect the user, then connect again."""
        await self.disconnect(user_id=user_id)
        await self.connect(user_id=user_id, **params)

    async def exchange_public_token(self, user_id: str, public_token: str) -> None:
        """Exchange a client-side public token for an access token."""
        raise self._unsupported("exchange_public_token", user_id)

    async def store_access_token(self, user_id: str, access_token: str) -> None:
        """Store an access token delivered directly by the provider's client flow."""
        raise self._unsupported("store_access_token", user_id)

    def _unsupported(self, method: str, user_id: Optional[str]) -> PulseError:
        return PulseError(
            f"Provider {self.provider} does not support {method}",
            ErrorCode.METHOD_NOT_SUPPORTED,
            provider=self.provider,
            user_id=user_id,
            method=method,
        )

    async def aclose(self) -> None:
        """Release resources held by the adapter. Sessions are dropped."""
        self.sessions.clear()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider={self.provider!r})"
