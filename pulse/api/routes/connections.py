from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from pulse.api.dependencies import get_pulse
from pulse.api.schemas import (
    AccessTokenRequest,
    ConnectRequest,
    ConnectResponse,
    OperationStatus,
    PublicTokenRequest,
)
from pulse.core.logging import get_logger
from pulse.services import Pulse

connections_router = APIRouter()
logger = get_logger(__name__)


@connections_router.post(
    "/{user_id}/connections",
    response_model=ConnectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Connect a user",
    description="Starts the provider linking flow and returns the linking tokens it produced.",
)
async def connect_user(
    user_id: str,
    body: Optional[ConnectRequest] = Body(default=None),
    pulse: Pulse = Depends(get_pulse),
) -> ConnectResponse:
    body = body or ConnectRequest()
    link_tokens: List[str] = []
    await pulse.connect(
        user_id,
        provider=body.provider,
        **{**body.params, "on_connect_token_created": link_tokens.append},
    )
    logger.info(f"Connected user {user_id} ({len(link_tokens)} link token(s))")
    return ConnectResponse(user_id=user_id, provider=body.provider, link_tokens=link_tokens)


@connections_router.delete(
    "/{user_id}/connections",
    response_model=OperationStatus,
    summary="Disconnect a user",
)
async def disconnect_user(
    user_id: str,
    provider: Optional[str] = Query(default=None),
    pulse: Pulse = Depends(get_pulse),
) -> OperationStatus:
    await pulse.disconnect(user_id, provider=provider)
    return OperationStatus(user_id=user_id, provider=provider)


@connections_router.post(
    "/{user_id}/connections/public-token",
    response_model=OperationStatus,
    summary="Exchange a public token",
)
async def exchange_public_token(
    user_id: str,
    body: PublicTokenRequest,
    pulse: Pulse = Depends(get_pulse),
) -> OperationStatus:
    await pulse.exchange_public_token(user_id, body.public_token, provider=body.provider)
    return OperationStatus(user_id=user_id, provider=body.provider)


@connections_router.post(
    "/{user_id}/connections/access-token",
    response_model=OperationStatus,
    summary="Store an access token",
)
async def store_access_token(
    user_id: str,
    body: AccessTokenRequest,
    pulse: Pulse = Depends(get_pulse),
) -> OperationStatus:
    await pulse.store_access_token(user_id, body.access_token, provider=body.provider)
    return OperationStatus(user_id=user_id, provider=body.provider)
