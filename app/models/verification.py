"""
Domain models for verification persistence.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationRecord(BaseModel):
    """A verification about to be written for one (user, guild) pair."""

    user_id: str
    guild_id: str
    access_token: str
    refresh_token: str
    expires_at: datetime

    @classmethod
    def from_grant(
        cls,
        *,
        user_id: str,
        guild_id: str,
        access_token: str,
        refresh_token: str,
        expires_in: int,
        issued_at: Optional[datetime] = None,
    ) -> "VerificationRecord":
        issued_at = issued_at or _utcnow()
        return cls(
            user_id=user_id,
            guild_id=guild_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=issued_at + timedelta(seconds=expires_in),
        )


class StoredVerification(BaseModel):
    """Represents a verification record as persisted in the store."""

    pk: str = Field(..., description="Partition key derived from the user id.")
    sk: str = Field(..., description="Sort key derived from the guild id.")
    user_id: str
    guild_id: str
    access_token_encrypted: str
    refresh_token_encrypted: str
    expires_at: datetime
    verified_at: datetime
    added_servers: List[str] = Field(default_factory=list)


class GuildConfig(BaseModel):
    """Per-guild settings maintained by server administrators."""

    guild_id: str
    verified_role_id: Optional[str] = None


__all__ = ["GuildConfig", "StoredVerification", "VerificationRecord"]
