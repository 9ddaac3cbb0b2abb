"""WebSocket push channel for run events."""

from .hub import ConnectionHub

__all__ = ["ConnectionHub"]
