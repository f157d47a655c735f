"""
Discord OAuth utilities.

These helpers build the consent URL, exchange authorization codes and resolve
the user the resulting access token belongs to.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from app.core.config import DiscordSettings, OAuthSettings
from app.core.errors import CallbackValidationError, IdentityFetchError, TokenExchangeError


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str, *, max_age_seconds: Optional[int] = None) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise CallbackValidationError("Malformed OAuth state.") from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise CallbackValidationError("Invalid OAuth state signature.")
        payload = json.loads(serialized)

        if max_age_seconds is not None:
            try:
                issued_at = datetime.fromisoformat(payload["issued_at"])
            except (KeyError, TypeError, ValueError) as exc:
                raise CallbackValidationError("Missing issued_at in OAuth state.") from exc
            if issued_at.tzinfo is None:
                issued_at = issued_at.replace(tzinfo=timezone.utc)
            if datetime.now(timezone.utc) - issued_at > timedelta(seconds=max_age_seconds):
                raise CallbackValidationError("OAuth state has expired.")
        return payload


@dataclass(frozen=True)
class TokenGrant:
    """Tokens returned by a successful authorization code exchange."""

    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True)
class DiscordIdentity:
    """The authenticated Discord user."""

    user_id: str
    username: str


class DiscordOAuthClient:
    """Build Discord authorization URLs and exchange authorization codes."""

    AUTHORIZE_URL = "https://discord.com/oauth2/authorize"

    def __init__(
        self,
        discord_settings: DiscordSettings,
        oauth_settings: OAuthSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._discord = discord_settings
        self._oauth = oauth_settings
        self._timeout = timeout
        self._transport = transport

    @property
    def token_url(self) -> str:
        return f"{self._discord.api_base_url.rstrip('/')}/oauth2/token"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def build_authorization_url(self, state: str) -> str:
        """Construct the Discord OAuth consent URL."""
        params = {
            "client_id": self._discord.client_id,
            "redirect_uri": str(self._discord.redirect_uri),
            "response_type": "code",
            "scope": " ".join(self._oauth.scopes),
            "prompt": "consent",
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for an access/refresh token pair."""
        payload = {
            "client_id": self._discord.client_id,
            "client_secret": self._discord.client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": str(self._discord.redirect_uri),
        }

        try:
            async with self._client() as client:
                response = await client.post(self.token_url, data=payload)
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"Token endpoint unreachable: {exc}") from exc

        if not response.is_success:
            raise TokenExchangeError(
                "Token endpoint rejected the authorization code.",
                status_code=response.status_code,
                body=_response_body(response),
            )

        try:
            token_payload = response.json()
            access_token = token_payload.get("access_token")
            refresh_token = token_payload.get("refresh_token")
            expires_in = token_payload.get("expires_in")
            if expires_in is not None:
                expires_in = int(expires_in)
        except (ValueError, TypeError, AttributeError) as exc:
            raise TokenExchangeError(
                "Unreadable token payload returned from Discord.",
                status_code=response.status_code,
                body=_response_body(response),
            ) from exc

        if not access_token or not refresh_token or not expires_in:
            raise TokenExchangeError(
                "Incomplete token payload returned from Discord.",
                status_code=response.status_code,
            )

        return TokenGrant(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
        )

    async def fetch_identity(self, access_token: str) -> DiscordIdentity:
        """Resolve the user that owns ``access_token``."""
        url = f"{self._discord.api_base_url.rstrip('/')}/users/@me"
        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            async with self._client() as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise IdentityFetchError(f"User endpoint unreachable: {exc}") from exc

        if not response.is_success:
            raise IdentityFetchError(
                "Failed to fetch the current user.",
                status_code=response.status_code,
                body=_response_body(response),
            )

        try:
            user = response.json()
            user_id = user.get("id")
            username = user.get("username") or ""
        except (ValueError, AttributeError) as exc:
            raise IdentityFetchError(
                "Unreadable user payload returned from Discord.",
                status_code=response.status_code,
                body=_response_body(response),
            ) from exc
        if not user_id:
            raise IdentityFetchError(
                "User payload is missing an id.", status_code=response.status_code
            )
        return DiscordIdentity(user_id=str(user_id), username=str(username))


__all__ = [
    "DiscordIdentity",
    "DiscordOAuthClient",
    "OAuthStateEncoder",
    "TokenGrant",
]
