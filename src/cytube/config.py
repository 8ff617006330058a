"""
CyTube Client Configuration

Client-wide defaults loaded with pydantic-settings from environment variables
prefixed with ``CYTUBE_``. These only seed per-connection settings; nothing
here is mutated at runtime.
"""

import logging
from functools import lru_cache

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CYTUBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # ══════════════════════════════════════════════════════════════
    # Server Discovery
    # ══════════════════════════════════════════════════════════════
    config_url: str = "https://cytu.be/socketconfig/{channel}.json"
    http_timeout_s: float = Field(default=10.0, gt=0)

    # ══════════════════════════════════════════════════════════════
    # Connection Defaults
    # ══════════════════════════════════════════════════════════════
    default_timeout_ms: int = Field(default=10000, ge=0)  # 0 disables
    default_secure: bool = True
    default_reconnection: bool = True
    max_password_attempts: int = Field(default=2, ge=1)
    socketio_transports: list[str] = ["websocket"]

    # ══════════════════════════════════════════════════════════════
    # Logging
    # ══════════════════════════════════════════════════════════════
    log_level: str = "INFO"

    @field_validator("config_url")
    @classmethod
    def check_config_url(cls, v: str) -> str:
        if "{channel}" not in v:
            raise ValueError("config_url must contain a {channel} placeholder")
        return v

    @field_validator("socketio_transports", mode="before")
    @classmethod
    def parse_transports(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Filter structlog output below ``level`` (defaults to ``log_level``)."""
    name = (level or get_settings().log_level).upper()
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(name)
        ),
    )
