"""
Error handling package for Pulse.
Provides centralized processing of demoted errors.
"""

from pulse.infrastructure.error.handler import (
    ErrorDetails,
    ErrorHandler,
    ErrorSeverity,
)

__all__ = [
    "ErrorHandler",
    "ErrorDetails",
    "ErrorSeverity",
]
