"""Expose constructed client wrappers."""

from .connection import get_connection, reset_connections
from .discord_bot import DiscordBotClient
from .discord_oauth import DiscordIdentity, DiscordOAuthClient, OAuthStateEncoder, TokenGrant
from .dynamodb import DynamoDBClient
from .sqlite_store import SQLiteStore

__all__ = [
    "DiscordBotClient",
    "DiscordIdentity",
    "DiscordOAuthClient",
    "DynamoDBClient",
    "OAuthStateEncoder",
    "SQLiteStore",
    "TokenGrant",
    "get_connection",
    "reset_connections",
]
