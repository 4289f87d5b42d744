"""Infrastructure components shared across Pulse."""
