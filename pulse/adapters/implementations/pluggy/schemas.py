"""Pydantic schemas validating Pluggy API responses."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PluggyModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PluggyAuthResponse(PluggyModel):
    api_key: str


class PluggyConnectTokenResponse(PluggyModel):
    access_token: str


class PluggyAccount(PluggyModel):
    id: str
    type: str
    subtype: Optional[str] = None
    name: str
    marketing_name: Optional[str] = None
    number: Optional[str] = None
    balance: float
    currency_code: Optional[str] = None
    item_id: str
    owner: Optional[str] = None
    updated_at: Optional[datetime] = None


class PluggyTransaction(PluggyModel):
    id: str
    account_id: str
    description: str
    description_raw: Optional[str] = None
    currency_code: Optional[str] = None
    amount: float
    date: datetime
    balance: Optional[float] = None
    category: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None


class PluggyAccountsPage(PluggyModel):
    total: int = 0
    results: List[PluggyAccount] = []


class PluggyTransactionsPage(PluggyModel):
    total: int = 0
    total_pages: Optional[int] = None
    page: int = 1
    results: List[PluggyTransaction] = []
