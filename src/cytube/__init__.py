"""
cytube - Async client for CyTube channels

Join a channel over Socket.IO, answer its password challenge, and read the
current media, playlist and user list.
"""

__version__ = "0.1.0"

from .config import Settings, configure_logging, get_settings
from .core.models import ConnectionSettings, Endpoint
from .exceptions import (
    AuthError,
    CytubeError,
    RequestTimeoutError,
    ResolutionError,
    TransportError,
    ValidationError,
)
from .realtime.connection import CytubeConnection, connect

__all__ = [
    "__version__",
    "connect",
    "CytubeConnection",
    "ConnectionSettings",
    "Endpoint",
    "Settings",
    "get_settings",
    "configure_logging",
    "CytubeError",
    "ValidationError",
    "ResolutionError",
    "AuthError",
    "TransportError",
    "RequestTimeoutError",
]
