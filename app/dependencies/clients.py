"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Callable

from app.clients import (
    DiscordBotClient,
    DiscordOAuthClient,
    OAuthStateEncoder,
    get_connection,
)
from app.clients.connection import ConnectionHandle
from app.core.config import get_settings
from app.services import (
    GuildConfigStore,
    GuildStateCodec,
    TokenCipherService,
    VerificationRecordStore,
    VerificationService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


def get_store_connection() -> ConnectionHandle:
    """Return the process-wide store handle, opening it on first use."""
    return get_connection(_settings().store.uri)


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the Discord client secret."""
    settings = _settings()
    return OAuthStateEncoder(secret_key=settings.discord.client_secret)


@lru_cache()
def get_guild_state_codec() -> GuildStateCodec:
    settings = _settings()
    return GuildStateCodec(settings.oauth, get_oauth_state_encoder())


@lru_cache()
def get_discord_oauth_client() -> DiscordOAuthClient:
    """Create a singleton Discord OAuth client."""
    settings = _settings()
    return DiscordOAuthClient(
        settings.discord, settings.oauth, timeout=settings.http_timeout_seconds
    )


@lru_cache()
def get_discord_bot_client() -> DiscordBotClient:
    """Create a singleton client for bot-authenticated Discord calls."""
    settings = _settings()
    return DiscordBotClient(settings.discord, timeout=settings.http_timeout_seconds)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.discord.client_secret
    return TokenCipherService.from_setting(secret)


@lru_cache()
def get_verification_record_store() -> VerificationRecordStore:
    return VerificationRecordStore(get_store_connection, get_token_cipher_service())


@lru_cache()
def get_guild_config_store() -> GuildConfigStore:
    return GuildConfigStore(get_store_connection)


def get_verification_service() -> VerificationService:
    """Build the verification orchestrator from the shared clients."""
    return VerificationService(
        oauth_client=get_discord_oauth_client(),
        bot_client=get_discord_bot_client(),
        record_store=get_verification_record_store(),
        guild_configs=get_guild_config_store(),
        state_codec=get_guild_state_codec(),
    )


def get_verification_service_factory() -> Callable[[], VerificationService]:
    """Hand routes the service builder so they can defer building it."""
    return get_verification_service


__all__ = [
    "get_discord_bot_client",
    "get_discord_oauth_client",
    "get_guild_config_store",
    "get_guild_state_codec",
    "get_oauth_state_encoder",
    "get_store_connection",
    "get_token_cipher_service",
    "get_verification_record_store",
    "get_verification_service",
    "get_verification_service_factory",
]
