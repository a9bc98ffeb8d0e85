"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app and the maintenance
scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class _EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")


class YandexSettings(_EnvSettings):
    """Configuration required for interacting with the Yandex OAuth and Disk APIs."""

    client_id: str = Field(..., alias="YANDEX_CLIENT_ID")
    client_secret: str = Field(..., alias="YANDEX_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., alias="YANDEX_REDIRECT_URI")
    scope: str = Field(
        "cloud_api:disk.app_folder cloud_api:disk.read cloud_api:disk.write",
        alias="YANDEX_SCOPE",
    )
    auth_url: str = Field("https://oauth.yandex.com/authorize", alias="YANDEX_AUTH_URL")
    token_url: str = Field("https://oauth.yandex.com/token", alias="YANDEX_TOKEN_URL")
    api_base_url: str = Field(
        "https://cloud-api.yandex.net/v1/disk", alias="YANDEX_DISK_API_URL"
    )
    connect_timeout_seconds: float = Field(5.0, alias="YANDEX_CONNECT_TIMEOUT")
    read_timeout_seconds: float = Field(30.0, alias="YANDEX_READ_TIMEOUT")
    upload_timeout_seconds: float = Field(
        600.0,
        alias="YANDEX_UPLOAD_TIMEOUT",
        description="Read/write timeout applied to the byte transfer phase of uploads.",
    )
    token_scope: Literal["shared", "user"] = Field(
        "shared",
        alias="YANDEX_TOKEN_SCOPE",
        description=(
            "'shared' uses the most recently updated credential for every caller; "
            "'user' only uses the caller's own credential."
        ),
    )
    refresh_leeway_seconds: int = Field(
        0,
        alias="YANDEX_REFRESH_LEEWAY_SECONDS",
        description="Refresh tokens this many seconds before they actually expire.",
    )

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class SecuritySettings(_EnvSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class OAuthSettings(_EnvSettings):
    """OAuth flow configuration."""

    state_ttl_seconds: int = Field(900, alias="OAUTH_STATE_TTL")


class StorageSettings(_EnvSettings):
    """Local persistence configuration."""

    db_path: str = Field("var/disk_bridge.db", alias="APP_DB_PATH")


class AppSettings(_EnvSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[AnyHttpUrl] = Field(
        None,
        alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users back to the front-end.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    yandex: YandexSettings = Field(default_factory=YandexSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "SecuritySettings",
    "StorageSettings",
    "YandexSettings",
    "get_settings",
]
