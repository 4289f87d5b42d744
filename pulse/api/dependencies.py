from typing import Optional

from fastapi import Request

from pulse.adapters.factory import AdapterFactory
from pulse.core.config import Settings, get_settings
from pulse.core.logging import get_logger
from pulse.services import Pulse

# Initialize logger
logger = get_logger(__name__)


def build_pulse(settings: Optional[Settings] = None) -> Pulse:
    """
    Build the dispatch object from application settings.

    Every provider with credentials in the environment is registered.

    Raises:
        PulseError: CONFIGURATION_ERROR when no provider is configured
    """
    settings = settings or get_settings()
    adapters = AdapterFactory().create_adapters_from_settings(settings)
    return Pulse(adapters, default_provider=settings.DEFAULT_PROVIDER)


async def get_pulse(request: Request) -> Pulse:
    """
    Dependency providing the application's Pulse instance.

    The instance is created on first use and kept on ``app.state`` so
    sessions survive across requests.
    """
    pulse = getattr(request.app.state, "pulse", None)
    if pulse is None:
        logger.info("Building Pulse from settings")
        pulse = build_pulse()
        request.app.state.pulse = pulse
    return pulse
