"""
CyTube Core Models

Pydantic models for connection settings, resolved endpoints and the
socket configuration document served by CyTube.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from cytube.config import get_settings
from cytube.exceptions import ValidationError


# ══════════════════════════════════════════════════════════════
# Enums
# ══════════════════════════════════════════════════════════════


class ChannelEvent(str, Enum):
    """Socket.IO event names used by the channel protocol."""

    # Transport lifecycle
    CONNECT = "connect"
    DISCONNECT = "disconnect"

    # Client -> Server
    JOIN_CHANNEL = "joinChannel"
    CHANNEL_PASSWORD = "channelPassword"

    # Server -> Client
    NEED_PASSWORD = "needPassword"
    SET_PERMISSIONS = "setPermissions"
    CHANGE_MEDIA = "changeMedia"
    PLAYLIST = "playlist"
    USERLIST = "userlist"


class HandshakeState(str, Enum):
    """Stages of joining a channel."""

    OPENING = "opening"
    JOINING = "joining"
    AWAITING_PASSWORD = "awaiting_password"
    READY = "ready"
    FAILED = "failed"


# ══════════════════════════════════════════════════════════════
# Connection Settings
# ══════════════════════════════════════════════════════════════


class ConnectionSettings(BaseModel):
    """Per-connection settings. Immutable once constructed."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    channel: str = Field(min_length=1)
    endpoint: str | None = None
    password: str | None = Field(default=None, repr=False)
    secure: bool = Field(default_factory=lambda: get_settings().default_secure)
    reconnection: bool = Field(
        default_factory=lambda: get_settings().default_reconnection
    )
    timeout_ms: int = Field(
        default_factory=lambda: get_settings().default_timeout_ms, ge=0
    )
    max_password_attempts: int = Field(
        default_factory=lambda: get_settings().max_password_attempts, ge=1
    )

    @field_validator("channel")
    @classmethod
    def strip_channel(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("channel must not be blank")
        return v

    @classmethod
    def coerce(cls, value: Any) -> "ConnectionSettings":
        """Build settings from a channel name, a mapping, or settings.

        Raises:
            ValidationError: If no channel is given or a field is invalid.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            value = {"channel": value}
        if not isinstance(value, Mapping) or not value.get("channel"):
            raise ValidationError(
                "You must pass the name of a channel or settings with a channel"
            )
        # Unset keys fall back to the documented defaults
        data = {k: v for k, v in value.items() if v is not None}
        try:
            return cls(**data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid connection settings: {e}") from e


# ══════════════════════════════════════════════════════════════
# Endpoints
# ══════════════════════════════════════════════════════════════


class Endpoint(BaseModel):
    """A resolved socket server."""

    model_config = ConfigDict(frozen=True)

    url: str
    secure: bool


class SocketServer(BaseModel):
    """One candidate server from the socket configuration document."""

    url: str
    secure: bool


class SocketConfig(BaseModel):
    """Body of ``/socketconfig/<channel>.json``."""

    servers: list[SocketServer]

    def select(self, secure: bool) -> Endpoint | None:
        """Return the first server matching the security preference."""
        for server in self.servers:
            if server.secure is secure:
                return Endpoint(url=server.url, secure=server.secure)
        return None
