import logging
from typing import Any, Dict, List, Optional, Type

from pulse.adapters.implementations import ADAPTER_IMPLEMENTATIONS
from pulse.adapters.interfaces import PulseAdapter
from pulse.core.config import Settings
from pulse.core.exceptions import ErrorCode, PulseError

logger = logging.getLogger(__name__)


class AdapterFactory:
    """
    Factory for creating adapter instances.

    Maps provider type strings to adapter classes and builds configured
    instances either from plain dictionaries or from application settings.
    """

    def __init__(self, adapter_classes: Optional[Dict[str, Type[PulseAdapter]]] = None):
        """
        Initialize the adapter factory.

        Args:
            adapter_classes: Provider type to class mapping, defaults to the
                built-in implementations
        """
        self._classes: Dict[str, Type[PulseAdapter]] = dict(
            ADAPTER_IMPLEMENTATIONS if adapter_classes is None else adapter_classes
        )
        logger.debug(f"Initialized AdapterFactory with types: {', '.join(self._classes)}")

    def register_adapter_class(self, provider_type: str, adapter_class: Type[PulseAdapter]) -> None:
        """
        Register a new adapter implementation with the factory.

        Raises:
            PulseError: CONFIGURATION_ERROR for an empty type or a non-adapter class
        """
        if not provider_type or not isinstance(provider_type, str):
            raise PulseError("Provider type must be a non-empty string", ErrorCode.CONFIGURATION_ERROR)
        if not isinstance(adapter_class, type) or not issubclass(adapter_class, PulseAdapter):
            raise PulseError(
                "Adapter class must be a subclass of PulseAdapter",
                ErrorCode.CONFIGURATION_ERROR,
                provider=provider_type,
            )
        self._classes[provider_type] = adapter_class
        logger.info(f"Registered adapter type: {provider_type}")

    def get_adapter_types(self) -> List[str]:
        return list(self._classes)

    def create_adapter(
        self,
        provider_type: str,
        config: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> PulseAdapter:
        """
        Create an adapter instance of the specified type with the given configuration.

        Args:
            provider_type: Type of adapter to create (e.g. 'plaid', 'teller')
            config: Configuration for the adapter
            **kwargs: Extra constructor arguments such as ``provider`` or ``http_client``

        Returns:
            An instance of the requested adapter

        Raises:
            PulseError: PROVIDER_NOT_FOUND if the type is unknown,
                CONFIGURATION_ERROR if the adapter cannot be built
        """
        adapter_class = self._classes.get(provider_type)
        if adapter_class is None:
            logger.error(f"Adapter type '{provider_type}' not registered")
            raise PulseError(
                f"Adapter type '{provider_type}' not found",
                ErrorCode.PROVIDER_NOT_FOUND,
                provider=provider_type,
            )

        try:
            adapter = adapter_class(config or {}, **kwargs)
        except PulseError as e:
            logger.error(f"Invalid configuration for {provider_type} adapter: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Error creating {provider_type} adapter: {str(e)}")
            raise PulseError.from_exception(
                e,
                ErrorCode.CONFIGURATION_ERROR,
                f"Failed to create {provider_type} adapter",
                provider=provider_type,
            ) from e

        logger.info(f"Created {provider_type} adapter")
        return adapter

    def create_adapters_from_settings(self, settings: Settings, **kwargs: Any) -> List[PulseAdapter]:
        """
        Build every adapter whose credentials are present in ``settings``.

        Providers are created in a fixed order: plaid, teller, pluggy, then
        mock when enabled.
        """
        common = {
            "timeout": settings.DEFAULT_TIMEOUT,
            "max_retries": settings.MAX_RETRIES,
            "retry_backoff_factor": settings.RETRY_BACKOFF_FACTOR,
            "debug": settings.DEBUG,
        }
        configs: Dict[str, Dict[str, Any]] = {}

        if settings.PLAID_CLIENT_ID and settings.PLAID_SECRET:
            configs["plaid"] = {
                "client_id": settings.PLAID_CLIENT_ID,
                "api_key": settings.PLAID_SECRET,
                "environment": settings.PLAID_ENVIRONMENT,
            }
        if settings.TELLER_API_KEY:
            configs["teller"] = {
                "api_key": settings.TELLER_API_KEY,
                "certificate": settings.TELLER_CERTIFICATE,
                "private_key": settings.TELLER_PRIVATE_KEY,
            }
        if settings.PLUGGY_CLIENT_ID and settings.PLUGGY_CLIENT_SECRET:
            configs["pluggy"] = {
                "client_id": settings.PLUGGY_CLIENT_ID,
                "client_secret": settings.PLUGGY_CLIENT_SECRET,
            }
        if settings.ENABLE_MOCK_ADAPTER:
            configs["mock"] = {}

        adapters = [
            self.create_adapter(provider_type, {**common, **config}, **kwargs)
            for provider_type, config in configs.items()
        ]
        logger.info(f"Configured providers: {', '.join(a.provider for a in adapters) or 'none'}")
        return adapters
