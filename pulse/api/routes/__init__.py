"""HTTP routes exposing the Pulse operations."""
