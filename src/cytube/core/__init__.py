"""Core domain models."""

from .models import (
    ChannelEvent,
    ConnectionSettings,
    Endpoint,
    HandshakeState,
    SocketConfig,
    SocketServer,
)

__all__ = [
    "ChannelEvent",
    "ConnectionSettings",
    "Endpoint",
    "HandshakeState",
    "SocketConfig",
    "SocketServer",
]
