"""
Human-facing pages returned at the end of the OAuth callback.

The renderer is transport-agnostic; the FastAPI route and the serverless
handler each adapt a ``RenderedPage`` to their own response type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html import escape
from http import HTTPStatus
from textwrap import dedent
from typing import Any, Dict

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

MISSING_PARAMS_MESSAGE = "Missing code or state parameter."
FAILURE_MESSAGE = "❌ Verification failed. Please try again later."
INVALID_STATE_MESSAGE = "Invalid or expired state parameter."


@dataclass(frozen=True)
class RenderedPage:
    status_code: int
    body: str
    content_type: str = TEXT_CONTENT_TYPE
    headers: Dict[str, str] = field(default_factory=dict)

    def to_lambda_response(self) -> Dict[str, Any]:
        return {
            "statusCode": int(self.status_code),
            "headers": {"Content-Type": self.content_type, **self.headers},
            "body": self.body,
        }


_SUCCESS_TEMPLATE = dedent(
    """\
    <!DOCTYPE html>
    <html lang="en">
      <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>✅ Verified!</title>
        <style>
          body {{
            font-family: Arial, sans-serif;
            text-align: center;
            padding-top: 50px;
            background-color: #f0f2f5;
          }}
          .container {{
            max-width: 500px;
            margin: 0 auto;
            background: white;
            padding: 30px;
            border-radius: 10px;
            box-shadow: 0 2px 10px rgba(0,0,0,0.1);
          }}
          h1 {{ color: #28a745; }}
        </style>
      </head>
      <body>
        <div class="container">
          <h1>✅ Verification Successful!</h1>
          <p>Thanks, {username}! You have been verified and added to <strong>{guild_name}</strong>.</p>
          <p>You can now close this tab and return to Discord.</p>
        </div>
      </body>
    </html>
    """
)


def render_success(username: str, guild_name: str) -> RenderedPage:
    body = _SUCCESS_TEMPLATE.format(username=escape(username), guild_name=escape(guild_name))
    return RenderedPage(
        status_code=HTTPStatus.OK, body=body, content_type=HTML_CONTENT_TYPE
    )


def render_failure() -> RenderedPage:
    return RenderedPage(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, body=FAILURE_MESSAGE)


def render_missing_params() -> RenderedPage:
    return RenderedPage(status_code=HTTPStatus.BAD_REQUEST, body=MISSING_PARAMS_MESSAGE)


def render_invalid_state() -> RenderedPage:
    return RenderedPage(status_code=HTTPStatus.BAD_REQUEST, body=INVALID_STATE_MESSAGE)


__all__ = [
    "FAILURE_MESSAGE",
    "INVALID_STATE_MESSAGE",
    "MISSING_PARAMS_MESSAGE",
    "RenderedPage",
    "render_failure",
    "render_invalid_state",
    "render_missing_params",
    "render_success",
]
