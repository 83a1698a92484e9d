"""expvardash configuration loaded from environment variables."""

from __future__ import annotations

import json

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from .env file, overridable from the CLI."""

    # Monitored target
    monitor_host: str = Field(
        default="localhost",
        validation_alias=AliasChoices("MONITOR_HOST", "MONHOST", "monitor_host"),
    )
    monitor_port: int = Field(
        default=8123,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("MONITOR_PORT", "MONPORT", "monitor_port"),
    )

    # Server
    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("HOST", "host"))
    port: int = Field(default=8080, ge=1, le=65535, validation_alias=AliasChoices("PORT", "port"))
    cors_origins: str = Field(default="*", validation_alias=AliasChoices("CORS_ORIGINS", "cors_origins"))
    rate_limit: str = Field(default="120/minute", validation_alias=AliasChoices("RATE_LIMIT", "rate_limit"))
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))

    # Polling
    polling_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        validation_alias=AliasChoices("POLLING_INTERVAL", "POLLINGINT", "polling_interval_seconds"),
    )
    history_length: int = Field(
        default=10,
        ge=1,
        validation_alias=AliasChoices("HISTORY_LENGTH", "history_length"),
    )
    fetch_timeout_seconds: float = Field(
        default=3.0,
        gt=0,
        validation_alias=AliasChoices("FETCH_TIMEOUT", "fetch_timeout_seconds"),
    )

    # Dashboard / static files
    dashboard_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("DASHBOARD_ENABLED", "dashboard_enabled"),
    )
    dashboard_refresh_ms: int = Field(
        default=2000,
        ge=100,
        validation_alias=AliasChoices("DASHBOARD_REFRESH_MS", "dashboard_refresh_ms"),
    )
    static_dir: str = Field(default="./static", validation_alias=AliasChoices("STATIC_DIR", "static_dir"))

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @property
    def target_url(self) -> str:
        return f"http://{self.monitor_host}:{self.monitor_port}/debug/vars"

    @property
    def cors_origins_list(self) -> list[str]:
        raw = (self.cors_origins or "").strip()
        if not raw:
            return []

        # Supports JSON list format and comma-separated format.
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    return [str(origin).strip() for origin in parsed if str(origin).strip()]
            except json.JSONDecodeError:
                pass

        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }


def get_settings(**overrides) -> Settings:
    """Build settings from the environment, with explicit overrides taking priority."""
    values = {key: value for key, value in overrides.items() if value is not None}
    return Settings(**values)
