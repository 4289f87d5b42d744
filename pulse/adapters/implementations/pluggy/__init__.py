"""Pluggy adapter."""

from pulse.adapters.implementations.pluggy.adapter import PluggyAdapter, PluggyAdapterConfig

__all__ = ["PluggyAdapter", "PluggyAdapterConfig"]
