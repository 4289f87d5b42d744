"""Services layer: the Pulse dispatch object."""

from pulse.services.pulse_service import Pulse

__all__ = ["Pulse"]
