from typing import Dict, List, Optional

from fastapi import APIRouter, Request, status
from pydantic import BaseModel

from pulse import __version__
from pulse.api.dependencies import get_pulse
from pulse.core.exceptions import PulseError
from pulse.core.logging import get_logger

# Initialize router and logger
health_router = APIRouter()
logger = get_logger(__name__)


class HealthStatus(BaseModel):
    """Basic health status response model."""
    status: str
    version: str = __version__
    service: str = "Pulse"


class DependencyStatus(BaseModel):
    """Status of a single provider adapter."""
    name: str
    status: str
    details: Optional[Dict] = None


class DetailedHealthStatus(HealthStatus):
    """Detailed health status with provider information."""
    dependencies: List[DependencyStatus]


@health_router.get(
    "",
    response_model=HealthStatus,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def get_health() -> HealthStatus:
    logger.debug("Health check requested")
    return HealthStatus(status="ok")


@health_router.get(
    "/detailed",
    response_model=DetailedHealthStatus,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
    description="Returns health status including every configured provider.",
)
async def get_detailed_health(request: Request) -> DetailedHealthStatus:
    """
    Detailed health check endpoint.

    Reports ``degraded`` instead of failing when no provider can be configured.
    """
    logger.debug("Detailed health check requested")
    try:
        pulse = await get_pulse(request)
    except PulseError as e:
        return DetailedHealthStatus(
            status="degraded",
            dependencies=[DependencyStatus(name="providers", status="unavailable", details=e.to_dict()["error"])],
        )

    dependencies = [
        DependencyStatus(name=info["provider"], status="ok", details=info)
        for info in pulse.get_capabilities()
    ]
    return DetailedHealthStatus(status="ok", dependencies=dependencies)
