"""
CyTube Client Exceptions

Every error raised to callers derives from CytubeError.
"""


class CytubeError(Exception):
    """Base exception for all cytube client errors."""


class ValidationError(CytubeError, ValueError):
    """Connection settings are missing or invalid (e.g. no channel)."""


class ResolutionError(CytubeError):
    """The socket server for a channel could not be resolved."""


class AuthError(CytubeError):
    """The channel password was missing or rejected. The session is closed."""


class TransportError(CytubeError):
    """The socket session could not be opened or is no longer usable."""


class RequestTimeoutError(CytubeError, TimeoutError):
    """No response arrived within the configured window. The session stays open."""


__all__ = [
    "CytubeError",
    "ValidationError",
    "ResolutionError",
    "AuthError",
    "TransportError",
    "RequestTimeoutError",
]
