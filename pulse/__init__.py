"""
Pulse: one contract over many financial-data providers.

Build a :class:`Pulse` from provider adapters, then connect users and
fetch normalized accounts and transactions from one provider or all of them.
"""

__version__ = "0.1.0"

from pulse.adapters.implementations import (
    MockAdapter,
    PlaidAdapter,
    PluggyAdapter,
    TellerAdapter,
)
from pulse.adapters.interfaces import AdapterCapability, AdapterConfig, PulseAdapter
from pulse.core.exceptions import ErrorCode, PulseError
from pulse.domain.models import (
    Account,
    AccountType,
    Transaction,
    TransactionHistoryOptions,
    TransactionType,
)
from pulse.services import Pulse

__all__ = [
    "__version__",
    "Pulse",
    "PulseAdapter",
    "AdapterCapability",
    "AdapterConfig",
    "PlaidAdapter",
    "TellerAdapter",
    "PluggyAdapter",
    "MockAdapter",
    "Account",
    "AccountType",
    "Transaction",
    "TransactionType",
    "TransactionHistoryOptions",
    "ErrorCode",
    "PulseError",
]
