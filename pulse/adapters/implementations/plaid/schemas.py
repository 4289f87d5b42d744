"""Pydantic schemas validating Plaid API responses."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class PlaidModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PlaidLocation(PlaidModel):
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    store_number: Optional[str] = None


class PlaidBalances(PlaidModel):
    available: Optional[float] = None
    current: Optional[float] = None
    limit: Optional[float] = None
    iso_currency_code: Optional[str] = None
    unofficial_currency_code: Optional[str] = None


class PlaidAccount(PlaidModel):
    account_id: str
    balances: PlaidBalances
    mask: Optional[str] = None
    name: str
    official_name: Optional[str] = None
    type: str
    subtype: Optional[str] = None
    verification_status: Optional[str] = None


class PlaidTransaction(PlaidModel):
    account_id: str
    amount: float
    iso_currency_code: Optional[str] = None
    unofficial_currency_code: Optional[str] = None
    category: Optional[List[str]] = None
    category_id: Optional[str] = None
    check_number: Optional[str] = None
    date: str
    datetime: Optional[str] = None
    authorized_date: Optional[str] = None
    location: Optional[PlaidLocation] = None
    name: str
    merchant_name: Optional[str] = None
    merchant_entity_id: Optional[str] = None
    original_description: Optional[str] = None
    payment_channel: Optional[str] = None
    pending: bool
    pending_transaction_id: Optional[str] = None
    account_owner: Optional[str] = None
    transaction_id: str
    transaction_type: Optional[str] = None
    website: Optional[str] = None


class PlaidAccountsResponse(PlaidModel):
    accounts: List[PlaidAccount]
    request_id: Optional[str] = None


class PlaidTransactionsResponse(PlaidModel):
    accounts: List[PlaidAccount] = []
    transactions: List[PlaidTransaction]
    total_transactions: Optional[int] = None
    request_id: Optional[str] = None


class PlaidLinkTokenResponse(PlaidModel):
    link_token: str
    expiration: Optional[str] = None
    request_id: Optional[str] = None


class PlaidExchangeTokenResponse(PlaidModel):
    access_token: str
    item_id: str
    request_id: Optional[str] = None
