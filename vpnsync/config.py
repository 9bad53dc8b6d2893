"""vpnsync configuration system using Pydantic Settings."""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class VpnSyncConfig(BaseSettings):
    """Main configuration class. Loads from .env file and environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "vpnsync"
    debug: bool = False

    # Logging
    log_dir: str = "logs"
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    # Remote API
    api_base_url: str = "http://localhost:5000/api"
    api_token: Optional[str] = None
    request_timeout: float = 30.0

    # Toggle debounce and connection cooldown (milliseconds)
    toggle_cooldown_ms: int = 1000
    connection_cooldown_ms: int = 5000

    # Connection watchdog
    watchdog_interval: float = 5.0  # seconds between pings
    watchdog_fail_threshold: int = 3  # consecutive failures before a drop is declared

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_base_url must be an http(s) URL")
        return v.rstrip("/")

    @field_validator(
        "request_timeout",
        "toggle_cooldown_ms",
        "connection_cooldown_ms",
        "watchdog_interval",
        "watchdog_fail_threshold",
    )
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @property
    def toggle_cooldown(self) -> float:
        """Toggle cooldown in seconds."""
        return self.toggle_cooldown_ms / 1000.0

    @property
    def connection_cooldown(self) -> float:
        return self.connection_cooldown_ms / 1000.0


def get_config() -> VpnSyncConfig:
    """Factory function to create config instance."""
    return VpnSyncConfig()
