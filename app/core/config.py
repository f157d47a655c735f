"""
Application configuration models and helpers.

Centralizes settings management so both the FastAPI app and the serverless
callback handler share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


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


class DiscordSettings(BaseSettings):
    """Credentials and endpoints for the Discord REST API."""

    client_id: str = Field(..., alias="DISCORD_CLIENT_ID")
    client_secret: str = Field(..., alias="DISCORD_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., alias="DISCORD_REDIRECT_URI")
    bot_token: str = Field(
        ...,
        alias="DISCORD_BOT_TOKEN",
        description="Bot credential used for privileged guild and DM calls.",
    )
    api_base_url: str = Field("https://discord.com/api", alias="DISCORD_API_BASE_URL")


class StoreSettings(BaseSettings):
    """Where verification records and guild configuration live."""

    uri: str = Field(
        "sqlite:///./data/verification.db",
        alias="VERIFICATION_STORE_URI",
        description=(
            "sqlite:///path for local development or dynamodb://table?region=... "
            "in production."
        ),
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    signed_state: bool = Field(
        False,
        alias="OAUTH_SIGNED_STATE",
        description=(
            "When false the state parameter is the raw guild id. When true it is "
            "an HMAC-signed payload carrying the guild id and a nonce."
        ),
    )
    state_ttl_seconds: int = Field(900, alias="OAUTH_STATE_TTL")
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("identify", "guilds.join"),
        alias="OAUTH_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class AppSettings(BaseSettings):
    """Root settings object for the application."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="APP_LOG_LEVEL")
    http_timeout_seconds: float = Field(10.0, alias="HTTP_TIMEOUT_SECONDS")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "DiscordSettings",
    "OAuthSettings",
    "SecuritySettings",
    "StoreSettings",
    "get_settings",
]
