"""
AWS Lambda (and Netlify Functions) entrypoint for the OAuth callback.
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict

from app.clients import DiscordBotClient, DiscordOAuthClient, OAuthStateEncoder, get_connection
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.services import (
    GuildConfigStore,
    GuildStateCodec,
    TokenCipherService,
    VerificationRecordStore,
    VerificationService,
)
from app.services.rendering import render_missing_params

logger = logging.getLogger(__name__)


@lru_cache()
def _bootstrap() -> VerificationService:
    """Build the verification service once per warm runtime."""
    settings = get_settings()
    configure_logging(settings.log_level)

    def connect():
        return get_connection(settings.store.uri)

    token_cipher = TokenCipherService.from_setting(
        settings.security.token_encryption_secret or settings.discord.client_secret
    )
    state_codec = GuildStateCodec(
        settings.oauth, OAuthStateEncoder(secret_key=settings.discord.client_secret)
    )
    return VerificationService(
        oauth_client=DiscordOAuthClient(
            settings.discord, settings.oauth, timeout=settings.http_timeout_seconds
        ),
        bot_client=DiscordBotClient(settings.discord, timeout=settings.http_timeout_seconds),
        record_store=VerificationRecordStore(connect, token_cipher),
        guild_configs=GuildConfigStore(connect),
        state_codec=state_codec,
    )


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Handle the browser redirect from Discord's consent screen.

    Expects ``code`` and ``state`` in ``queryStringParameters`` and returns an
    API Gateway style response with a rendered page.
    """
    params = event.get("queryStringParameters") or {}
    code = params.get("code")
    state = params.get("state")
    if not code or not state:
        return render_missing_params().to_lambda_response()

    service = _bootstrap()
    page = asyncio.run(service.handle_callback(code, state))
    if page.status_code >= 500:
        logger.warning("Verification callback failed", extra={"status_code": page.status_code})
    return page.to_lambda_response()


__all__ = ["lambda_handler"]
