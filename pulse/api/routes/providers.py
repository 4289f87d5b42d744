from typing import List

from fastapi import APIRouter, Depends

from pulse.api.dependencies import get_pulse
from pulse.api.schemas import ProviderInfo
from pulse.services import Pulse

providers_router = APIRouter()


@providers_router.get("", response_model=List[ProviderInfo], summary="List registered providers")
async def list_providers(pulse: Pulse = Depends(get_pulse)) -> List[ProviderInfo]:
    return [ProviderInfo(**info) for info in pulse.get_capabilities()]
