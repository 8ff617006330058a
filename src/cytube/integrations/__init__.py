"""External service integrations."""

from .socketconfig import EndpointResolver

__all__ = [
    "EndpointResolver",
]
