import logging
from typing import Dict, Iterable, Iterator, List, Optional

from pulse.adapters.interfaces import PulseAdapter
from pulse.core.exceptions import ErrorCode, PulseError

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Registry of live adapter instances keyed by provider id.

    Iteration follows registration order. Registering an id that is already
    present replaces the adapter but keeps its original position.
    """

    def __init__(self, adapters: Optional[Iterable[PulseAdapter]] = None):
        """
        Initialize the registry.

        Args:
            adapters: Optional adapters to register in order
        """
        self._adapters: Dict[str, PulseAdapter] = {}
        for adapter in adapters or ():
            self.register(adapter)
        logger.debug(f"Initialized AdapterRegistry with {len(self._adapters)} adapter(s)")

    def register(self, adapter: PulseAdapter, provider: Optional[str] = None) -> None:
        """
        Register an adapter instance.

        Args:
            adapter: The adapter to register
            provider: Registry key, defaults to the adapter's own provider id

        Raises:
            PulseError: CONFIGURATION_ERROR if the provider id is empty or the
                object is not an adapter
        """
        if not isinstance(adapter, PulseAdapter):
            raise PulseError(
                f"Expected a PulseAdapter, got {type(adapter).__name__}",
                ErrorCode.CONFIGURATION_ERROR,
            )

        provider = provider if provider is not None else adapter.provider
        if not provider or not isinstance(provider, str):
            raise PulseError(
                f"{type(adapter).__name__} has no provider id",
                ErrorCode.CONFIGURATION_ERROR,
            )

        if provider in self._adapters:
            logger.warning(f"Replacing adapter registered for provider '{provider}'")
        self._adapters[provider] = adapter
        logger.info(f"Registered adapter for provider: {provider}")

    def get(self, provider: str) -> Optional[PulseAdapter]:
        return self._adapters.get(provider)

    def require(self, provider: str) -> PulseAdapter:
        """
        Retrieve an adapter by provider id.

        Raises:
            PulseError: PROVIDER_NOT_FOUND if nothing is registered under ``provider``
        """
        adapter = self._adapters.get(provider)
        if adapter is None:
            raise PulseError(
                f"Provider {provider} not found",
                ErrorCode.PROVIDER_NOT_FOUND,
                provider=provider,
            )
        return adapter

    def first(self) -> Optional[PulseAdapter]:
        """The earliest registered adapter, or None when empty."""
        return next(iter(self._adapters.values()), None)

    @property
    def providers(self) -> List[str]:
        return list(self._adapters)

    @property
    def adapters(self) -> List[PulseAdapter]:
        return list(self._adapters.values())

    def __contains__(self, provider: object) -> bool:
        return provider in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    def __iter__(self) -> Iterator[PulseAdapter]:
        return iter(self.adapters)
