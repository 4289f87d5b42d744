"""
Normalized data model shared by every adapter.

Adapters translate their provider's native payloads into these shapes before
handing results to the dispatch layer.
"""

from pulse.domain.models.account import Account, AccountType
from pulse.domain.models.transaction import (
    Transaction,
    TransactionHistoryOptions,
    TransactionType,
)

__all__ = [
    "Account",
    "AccountType",
    "Transaction",
    "TransactionHistoryOptions",
    "TransactionType",
]
