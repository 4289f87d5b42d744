"""
Core building blocks shared by every layer: settings, the error taxonomy
and logging configuration.
"""

from pulse.core.exceptions import ErrorCode, ProviderAPIError, PulseError, wrap_errors

__all__ = [
    "ErrorCode",
    "ProviderAPIError",
    "PulseError",
    "wrap_errors",
]
