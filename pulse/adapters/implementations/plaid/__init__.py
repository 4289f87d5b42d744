"""Plaid adapter."""

from pulse.adapters.implementations.plaid.adapter import PlaidAdapter, PlaidAdapterConfig

__all__ = ["PlaidAdapter", "PlaidAdapterConfig"]
