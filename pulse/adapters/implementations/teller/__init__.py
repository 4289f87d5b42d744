"""Teller adapter."""

from pulse.adapters.implementations.teller.adapter import TellerAdapter, TellerAdapterConfig

__all__ = ["TellerAdapter", "TellerAdapterConfig"]
