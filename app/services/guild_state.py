"""
Translate the OAuth ``state`` parameter to and from the target guild id.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone

from app.clients.discord_oauth import OAuthStateEncoder
from app.core.config import OAuthSettings
from app.core.errors import CallbackValidationError

# Discord ids are snowflakes: unsigned 64-bit integers rendered in decimal.
_SNOWFLAKE = re.compile(r"[0-9]{1,20}")


def validate_guild_id(guild_id: str) -> str:
    if not isinstance(guild_id, str) or not _SNOWFLAKE.fullmatch(guild_id):
        raise CallbackValidationError("Guild id must be a Discord snowflake.")
    return guild_id


class GuildStateCodec:
    """Carries the guild id through the OAuth round trip.

    In compatibility mode the state is the bare guild id, which is what links
    generated by existing bots contain. In signed mode it is a tamper-proof
    payload that also holds a nonce and an issue time.
    """

    def __init__(self, oauth_settings: OAuthSettings, encoder: OAuthStateEncoder) -> None:
        self._settings = oauth_settings
        self._encoder = encoder

    @property
    def signed(self) -> bool:
        return self._settings.signed_state

    def issue(self, guild_id: str) -> str:
        validate_guild_id(guild_id)
        if not self.signed:
            return guild_id
        return self._encoder.encode(
            {
                "guild_id": guild_id,
                "nonce": uuid.uuid4().hex,
                "issued_at": datetime.now(timezone.utc).isoformat(),
            }
        )

    def guild_id_from(self, state: str) -> str:
        if not self.signed:
            return validate_guild_id(state)
        payload = self._encoder.decode(state, max_age_seconds=self._settings.state_ttl_seconds)
        guild_id = payload.get("guild_id")
        if not guild_id:
            raise CallbackValidationError("Missing guild id in OAuth state.")
        return validate_guild_id(str(guild_id))


__all__ = ["GuildStateCodec", "validate_guild_id"]
