from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from pulse.api.dependencies import get_pulse
from pulse.api.schemas import OperationStatus, RefreshRequest
from pulse.core.logging import get_logger
from pulse.domain.models import Account, Transaction, TransactionHistoryOptions
from pulse.services import Pulse

accounts_router = APIRouter()
logger = get_logger(__name__)


@accounts_router.get(
    "/{user_id}/accounts",
    response_model=List[Account],
    summary="List accounts",
    description="Accounts from the named provider, or merged across every provider.",
)
async def list_accounts(
    user_id: str,
    provider: Optional[str] = Query(default=None),
    pulse: Pulse = Depends(get_pulse),
) -> List[Account]:
    return await pulse.get_accounts(user_id, provider=provider)


@accounts_router.post(
    "/{user_id}/accounts/refresh",
    response_model=OperationStatus,
    summary="Refresh accounts",
)
async def refresh_accounts(
    user_id: str,
    body: Optional[RefreshRequest] = Body(default=None),
    pulse: Pulse = Depends(get_pulse),
) -> OperationStatus:
    body = body or RefreshRequest()
    await pulse.refresh_accounts(user_id, provider=body.provider, **body.params)
    return OperationStatus(user_id=user_id, provider=body.provider)


@accounts_router.get(
    "/{user_id}/accounts/{account_id}/transactions",
    response_model=List[Transaction],
    summary="List settled transactions for an account",
)
async def list_transactions(
    user_id: str,
    account_id: str,
    provider: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1),
    offset: Optional[int] = Query(default=None, ge=0),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    pulse: Pulse = Depends(get_pulse),
) -> List[Transaction]:
    options = TransactionHistoryOptions(limit=limit, offset=offset, start_date=start_date, end_date=end_date)
    transactions = await pulse.get_transactions(account_id, user_id, provider=provider, options=options)
    logger.debug(f"Returning {len(transactions)} transaction(s) for account {account_id}")
    return transactions
