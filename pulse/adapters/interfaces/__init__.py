"""
Interfaces package for Pulse adapters.

Contains the adapter capability contract and the shared pieces every
provider implementation builds on.
"""

from .adapter import (
    AdapterCapability,
    AdapterConfig,
    BASE_CAPABILITIES,
    ConnectTokenCallback,
    Environment,
    PulseAdapter,
)
from .connector import APIConnector, HttpMethod, RequestConfig
from .session import SessionStore

__all__ = [
    # Adapter contract
    'AdapterCapability',
    'AdapterConfig',
    'BASE_CAPABILITIES',
    'ConnectTokenCallback',
    'Environment',
    'PulseAdapter',

    # Connector
    'APIConnector',
    'HttpMethod',
    'RequestConfig',

    # Session state
    'SessionStore',
]
