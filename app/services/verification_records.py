"""
Persistence of verification records and guild configuration.

Both live in the same (pk, sk) keyed table. A verification is keyed by the
user and the guild, so the primary key itself enforces one record per pair.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from app.clients.connection import ConnectionHandle
from app.core.errors import PersistenceError
from app.models.verification import GuildConfig, StoredVerification, VerificationRecord
from app.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

GUILD_CONFIG_SORT_KEY = "config"


def verification_key(user_id: str, guild_id: str) -> tuple[str, str]:
    return f"user#{user_id}", f"guild#{guild_id}"


def guild_config_key(guild_id: str) -> tuple[str, str]:
    return f"guild#{guild_id}", GUILD_CONFIG_SORT_KEY


class VerificationRecordStore:
    """Reads and writes verification records.

    ``connect`` is called lazily so opening the store is part of the step that
    needs it.
    """

    def __init__(
        self,
        connect: Callable[[], ConnectionHandle],
        token_cipher: TokenCipherService,
    ) -> None:
        self._connect = connect
        self._cipher = token_cipher

    def upsert_verification(self, record: VerificationRecord) -> StoredVerification:
        """Create or overwrite the record for ``(user_id, guild_id)``.

        ``verified_at`` is stamped on every call so the latest verification
        wins. ``added_servers`` is only initialised on insert.
        """
        partition_key, sort_key = verification_key(record.user_id, record.guild_id)
        now = datetime.now(timezone.utc)
        attributes = {
            "user_id": record.user_id,
            "guild_id": record.guild_id,
            "access_token_encrypted": self._cipher.encrypt(record.access_token),
            "refresh_token_encrypted": self._cipher.encrypt(record.refresh_token),
            "expires_at": record.expires_at.isoformat(),
            "verified_at": now.isoformat(),
        }

        try:
            item = self._connect().upsert_item(
                partition_key=partition_key,
                sort_key=sort_key,
                attributes=attributes,
                defaults={"added_servers": []},
            )
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError("Failed to save verification record.") from exc

        return StoredVerification(**item)

    def get_verification(self, user_id: str, guild_id: str) -> Optional[StoredVerification]:
        partition_key, sort_key = verification_key(user_id, guild_id)
        try:
            item = self._connect().get_item(partition_key=partition_key, sort_key=sort_key)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError("Failed to load verification record.") from exc
        if not item:
            return None
        return StoredVerification(**item)

    def decrypt_tokens(self, stored: StoredVerification) -> tuple[str, str]:
        """Return the plaintext (access_token, refresh_token) pair."""
        return (
            self._cipher.decrypt(stored.access_token_encrypted),
            self._cipher.decrypt(stored.refresh_token_encrypted),
        )


class GuildConfigStore:
    """Guild settings written by administrators and read during verification."""

    def __init__(self, connect: Callable[[], ConnectionHandle]) -> None:
        self._connect = connect

    def get(self, guild_id: str) -> Optional[GuildConfig]:
        partition_key, sort_key = guild_config_key(guild_id)
        try:
            item = self._connect().get_item(partition_key=partition_key, sort_key=sort_key)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError("Failed to load guild config.") from exc
        if not item:
            return None
        return GuildConfig(
            guild_id=item.get("guild_id", guild_id),
            verified_role_id=item.get("verified_role_id") or None,
        )

    def save(self, config: GuildConfig) -> None:
        partition_key, sort_key = guild_config_key(config.guild_id)
        item = {
            "pk": partition_key,
            "sk": sort_key,
            "guild_id": config.guild_id,
            "verified_role_id": config.verified_role_id,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self._connect().put_item(item)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError("Failed to save guild config.") from exc
        logger.info("Saved guild config", extra={"guild_id": config.guild_id})


__all__ = [
    "GuildConfigStore",
    "VerificationRecordStore",
    "guild_config_key",
    "verification_key",
]
