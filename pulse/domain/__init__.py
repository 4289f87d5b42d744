"""
Domain package for Pulse.

Holds the provider-agnostic vocabulary (accounts and transactions) that
adapters normalize into.
"""
