"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_discord_bot_client,
    get_discord_oauth_client,
    get_guild_config_store,
    get_guild_state_codec,
    get_oauth_state_encoder,
    get_store_connection,
    get_token_cipher_service,
    get_verification_record_store,
    get_verification_service,
    get_verification_service_factory,
)

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
