import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pulse.domain.models.account import normalize_currency


class TransactionType(str, Enum):
    """Direction of a transaction; the amount itself is always a magnitude."""
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class Transaction(BaseModel):
    """
    Domain model for a settled transaction.

    ``amount`` is never negative: adapters translate the provider's signed
    amount into a magnitude plus a ``type``. ``account_id`` is a lookup key,
    not an ownership link.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    account_id: str
    amount: Decimal = Field(ge=0)
    currency: str
    description: str
    category: Optional[str] = None
    type: TransactionType
    date: dt.date
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("currency")
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return normalize_currency(v)

    @classmethod
    def from_signed_amount(
        cls,
        signed_amount: Decimal,
        outflow_is_negative: bool = True,
        **fields: Any,
    ) -> "Transaction":
        """
        Build a transaction from a provider-native signed amount.

        Args:
            signed_amount: Amount as reported by the provider
            outflow_is_negative: True when the provider reports money leaving
                the account as a negative number (Teller, Pluggy); False when
                outflows are positive (Plaid)
            **fields: Remaining Transaction fields

        Returns:
            Transaction: Normalized transaction
        """
        is_outflow = signed_amount < 0 if outflow_is_negative else signed_amount > 0
        return cls(
            amount=abs(signed_amount),
            type=TransactionType.DEBIT if is_outflow else TransactionType.CREDIT,
            **fields,
        )


class TransactionHistoryOptions(BaseModel):
    """Optional query refinement forwarded untouched to the selected adapter."""

    model_config = ConfigDict(frozen=True)

    limit: Optional[int] = None
    offset: Optional[int] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None

    def apply(self, transactions: List[Transaction]) -> List[Transaction]:
        """Filter and page ``transactions`` locally, for providers without server-side options."""
        if self.start_date:
            transactions = [t for t in transactions if t.date >= self.start_date]
        if self.end_date:
            transactions = [t for t in transactions if t.date <= self.end_date]
        start = self.offset or 0
        end = start + self.limit if self.limit is not None else None
        return transactions[start:end]
