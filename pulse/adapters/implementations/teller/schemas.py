"""Pydantic schemas validating Teller API responses."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TellerModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TellerCounterparty(TellerModel):
    name: Optional[str] = None
    type: Optional[Literal["organization", "person"]] = None


class TellerTransactionDetails(TellerModel):
    category: Optional[str] = None
    counterparty: Optional[TellerCounterparty] = None
    processing_status: Literal["pending", "complete"]


class TellerTransactionLinks(TellerModel):
    self_url: str = Field(alias="self")
    account: str


class TellerTransaction(TellerModel):
    id: str
    account_id: str
    date: str
    amount: str
    description: str
    status: Literal["posted", "pending"]
    type: str
    running_balance: Optional[str] = None
    details: TellerTransactionDetails
    links: TellerTransactionLinks


class TellerBalances(TellerModel):
    available: Optional[str] = None
    current: Optional[str] = None
    ledger: Optional[str] = None


class TellerInstitution(TellerModel):
    id: str
    name: str


class TellerAccountLinks(TellerModel):
    self_url: str = Field(alias="self")
    balances: Optional[str] = None
    transactions: Optional[str] = None


class TellerAccount(TellerModel):
    id: str
    name: str
    type: str
    subtype: Optional[str] = None
    balances: TellerBalances
    currency: str
    enrollment_id: str
    institution: TellerInstitution
    last_updated: str
    links: TellerAccountLinks
    status: Literal["open", "closed"]


class TellerConnectResponse(TellerModel):
    connect_token: str
