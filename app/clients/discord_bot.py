"""
Privileged Discord REST calls made with the bot credential.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type
from urllib.parse import quote

import httpx

from app.core.config import DiscordSettings
from app.core.errors import (
    GuildLookupError,
    MembershipGrantError,
    NotificationError,
    RoleAssignmentError,
    UpstreamError,
)


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class DiscordBotClient:
    """Guild membership, role, guild lookup and direct message operations."""

    def __init__(
        self,
        settings: DiscordSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = settings.api_base_url.rstrip("/")
        self._headers = {"Authorization": f"Bot {settings.bot_token}"}
        self._timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        *,
        error: Type[UpstreamError],
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, json=json, headers=self._headers)
        except httpx.HTTPError as exc:
            raise error(f"{method} {path} failed: {exc}") from exc

        if not response.is_success:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            raise error(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return response

    async def add_member(self, guild_id: str, user_id: str, access_token: str) -> None:
        """Add the user to the guild on their behalf.

        Discord answers 201 when the user joined and 204 when they were
        already a member; both mean the user is in the guild.
        """
        await self._request(
            "PUT",
            f"/guilds/{_segment(guild_id)}/members/{_segment(user_id)}",
            json={"access_token": access_token},
            error=MembershipGrantError,
        )

    async def add_role(self, guild_id: str, user_id: str, role_id: str) -> None:
        await self._request(
            "PUT",
            (
                f"/guilds/{_segment(guild_id)}/members/{_segment(user_id)}"
                f"/roles/{_segment(role_id)}"
            ),
            json={},
            error=RoleAssignmentError,
        )

    async def fetch_guild_name(self, guild_id: str) -> str:
        response = await self._request(
            "GET", f"/guilds/{_segment(guild_id)}", error=GuildLookupError
        )
        name = response.json().get("name")
        if not name:
            raise GuildLookupError(f"Guild {guild_id} has no name.")
        return name

    async def send_direct_message(self, user_id: str, content: str) -> None:
        """Open (or reuse) the DM channel with ``user_id`` and post ``content``."""
        channel = await self._request(
            "POST",
            "/users/@me/channels",
            json={"recipient_id": user_id},
            error=NotificationError,
        )
        channel_id = channel.json().get("id")
        if not channel_id:
            raise NotificationError("DM channel response is missing an id.")
        await self._request(
            "POST",
            f"/channels/{_segment(channel_id)}/messages",
            json={"content": content},
            error=NotificationError,
        )


__all__ = ["DiscordBotClient"]
