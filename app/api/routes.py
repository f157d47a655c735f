"""
FastAPI routes for the Discord verification service.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Annotated, Any, Callable

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import RedirectResponse

from app.core.errors import CallbackValidationError
from app.dependencies import (
    get_discord_oauth_client,
    get_guild_state_codec,
    get_verification_service_factory,
)
from app.schemas import AuthorizationLink
from app.services.rendering import RenderedPage, render_missing_params

router = APIRouter()


def _to_response(page: RenderedPage) -> Response:
    return Response(
        content=page.body,
        status_code=page.status_code,
        media_type=page.content_type,
        headers=page.headers or None,
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/authorize", status_code=HTTPStatus.OK, response_model=None)
async def start_discord_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_discord_oauth_client)],
    state_codec: Annotated[Any, Depends(get_guild_state_codec)],
    guild_id: str = Query(..., description="Guild the user wants to be verified in."),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Discord consent screen.",
    ),
) -> AuthorizationLink | RedirectResponse:
    """Build the Discord consent URL whose callback verifies the user in ``guild_id``."""
    try:
        state = state_codec.issue(guild_id)
    except CallbackValidationError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    authorization_url = oauth_client.build_authorization_url(state=state)

    accept_header = request.headers.get("accept", "")
    wants_html = "text/html" in accept_header.lower()
    if redirect or wants_html:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return AuthorizationLink(authorization_url=authorization_url, state=state)


@router.get("/callback")
async def handle_discord_oauth_callback(
    build_service: Annotated[Callable[[], Any], Depends(get_verification_service_factory)],
    code: str | None = Query(default=None, description="Authorization code from Discord."),
    state: str | None = Query(default=None, description="OAuth state carrying the guild."),
) -> Response:
    """Complete verification and render a page for the user's browser.

    ``code`` and ``state`` are optional here so a missing value yields the
    plain 400 page instead of a validation payload. The service is only
    built once both are present, so a request without them never depends on
    the deployment's Discord or store settings.
    """
    if not code or not state:
        return _to_response(render_missing_params())
    page = await build_service().handle_callback(code, state)
    return _to_response(page)
