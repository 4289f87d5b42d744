"""Request and response bodies of the HTTP transport."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

# Set by the route itself; never taken from the request body
RESERVED_PARAMS = frozenset({"user_id", "provider", "on_connect_token_created"})


class ProviderParamsRequest(BaseModel):
    """Body naming an optional provider plus adapter-specific parameters."""
    provider: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("params")
    @classmethod
    def drop_reserved_params(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        return {key: value for key, value in v.items() if key not in RESERVED_PARAMS}


class ConnectRequest(ProviderParamsRequest):
    """Connect a user to one provider, or to every provider when none is named."""


class RefreshRequest(ProviderParamsRequest):
    pass


class ConnectResponse(BaseModel):
    user_id: str
    provider: Optional[str] = None
    link_tokens: List[str] = []


class PublicTokenRequest(BaseModel):
    public_token: str = Field(min_length=1)
    provider: Optional[str] = None


class AccessTokenRequest(BaseModel):
    access_token: str = Field(min_length=1)
    provider: Optional[str] = None


class ProviderInfo(BaseModel):
    provider: str
    capabilities: List[str]
    active_sessions: int
    default: bool = False


class OperationStatus(BaseModel):
    status: str = "ok"
    user_id: str
    provider: Optional[str] = None
