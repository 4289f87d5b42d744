"""Thin FastAPI transport over the Pulse dispatch object."""
