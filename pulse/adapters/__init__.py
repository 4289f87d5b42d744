"""
Adapters package for Pulse.

This package contains components for integrating with financial data providers:
- The adapter contract and shared HTTP plumbing
- Concrete implementations for specific providers
- Factory and registry for managing adapter instances
"""

from . import interfaces

from .factory import AdapterFactory
from .registry import AdapterRegistry

__all__ = [
    'interfaces',
    'AdapterFactory',
    'AdapterRegistry',
]
