"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="ModiKodi Bridge", alias="APP_NAME")
    bridge_version: str = Field(default="3.0.0", alias="BRIDGE_VERSION")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=7515, alias="PORT")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    content_ttl_seconds: int = Field(default=120, alias="CONTENT_TTL", ge=1)
    resume_ttl_seconds: int = Field(
        default=7 * 24 * 60 * 60, alias="RESUME_TTL", ge=60
    )
    metadata_ttl_seconds: int = Field(
        default=24 * 60 * 60, alias="METADATA_TTL", ge=60
    )
    sweep_interval_seconds: float = Field(default=30.0, alias="SWEEP_INTERVAL", ge=1)

    metadata_timeout_seconds: float = Field(
        default=5.0, alias="METADATA_TIMEOUT", gt=0, le=60
    )
    upstream_timeout_seconds: float = Field(
        default=15.0, alias="UPSTREAM_TIMEOUT", gt=0, le=120
    )

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )

    logo_url: HttpUrl = Field(
        default="https://raw.githubusercontent.com/xbmc/xbmc/master/media/icon256x256.png",
        alias="BRIDGE_LOGO_URL",
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("bridge_version")
    @classmethod
    def _require_version(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("BRIDGE_VERSION must not be blank")
        return cleaned

    @field_validator("tmdb_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
