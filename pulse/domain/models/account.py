from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class AccountType(str, Enum):
    """Normalized account kinds every provider type is mapped onto."""
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"
    CREDIT = "CREDIT"
    INVESTMENT = "INVESTMENT"
    LOAN = "LOAN"
    CRYPTO = "CRYPTO"
    OTHER = "OTHER"


def normalize_currency(value: str) -> str:
    """Upper-case an ISO 4217 currency code, rejecting anything that is not three letters."""
    code = (value or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"Invalid currency code: {value!r}")
    return code


class Account(BaseModel):
    """
    Domain model for a financial account.

    Produced fresh by an adapter on every fetch and owned by the caller
    once returned. Instances are immutable.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: AccountType
    balance: Decimal
    currency: str
    last_updated: datetime
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("currency")
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return normalize_currency(v)

    @field_validator("last_updated")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
