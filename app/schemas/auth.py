"""Schemas related to OAuth flows."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AuthorizationLink(BaseModel):
    """Consent URL handed to a user who wants to verify in a guild."""

    authorization_url: str = Field(..., description="Discord OAuth consent URL.")
    state: str = Field(..., description="State value the callback will receive.")


__all__ = ["AuthorizationLink"]
