"""
Provider adapter implementations.

Each provider lives in its own subpackage with its response schemas; the
mock adapter is a single module.
"""

from pulse.adapters.implementations.mock import MockAdapter
from pulse.adapters.implementations.plaid import PlaidAdapter, PlaidAdapterConfig
from pulse.adapters.implementations.pluggy import PluggyAdapter, PluggyAdapterConfig
from pulse.adapters.implementations.teller import TellerAdapter, TellerAdapterConfig

PROVIDER_PLAID = PlaidAdapter.PROVIDER
PROVIDER_TELLER = TellerAdapter.PROVIDER
PROVIDER_PLUGGY = PluggyAdapter.PROVIDER
PROVIDER_MOCK = MockAdapter.PROVIDER

# Mapping of provider types to their implementation classes
ADAPTER_IMPLEMENTATIONS = {
    PROVIDER_PLAID: PlaidAdapter,
    PROVIDER_TELLER: TellerAdapter,
    PROVIDER_PLUGGY: PluggyAdapter,
    PROVIDER_MOCK: MockAdapter,
}

__all__ = [
    "MockAdapter",
    "PlaidAdapter",
    "PlaidAdapterConfig",
    "PluggyAdapter",
    "PluggyAdapterConfig",
    "TellerAdapter",
    "TellerAdapterConfig",

    "PROVIDER_PLAID",
    "PROVIDER_TELLER",
    "PROVIDER_PLUGGY",
    "PROVIDER_MOCK",

    "ADAPTER_IMPLEMENTATIONS",
]
