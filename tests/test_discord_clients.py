try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from app.clients.discord_bot import DiscordBotClient
from app.clients.discord_oauth import DiscordOAuthClient
from app.core.config import DiscordSettings, OAuthSettings
from app.core.errors import (
    GuildLookupError,
    IdentityFetchError,
    MembershipGrantError,
    NotificationError,
    RoleAssignmentError,
    TokenExchangeError,
)


def _settings() -> DiscordSettings:
    return DiscordSettings(
        DISCORD_CLIENT_ID="client",
        DISCORD_CLIENT_SECRET="secret",
        DISCORD_REDIRECT_URI="https://verify.example.com/api/callback",
        DISCORD_BOT_TOKEN="bot-token",
        DISCORD_API_BASE_URL="https://discord.test/api",
    )


class Recorder:
    def __init__(self, responses: dict[tuple[str, str], httpx.Response]) -> None:
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.responses:
            return httpx.Response(404, json={"message": "Unknown route"})
        return self.responses[key]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def _oauth_client(recorder: Recorder) -> DiscordOAuthClient:
    return DiscordOAuthClient(_settings(), OAuthSettings(), transport=recorder.transport())


def _bot_client(recorder: Recorder) -> DiscordBotClient:
    return DiscordBotClient(_settings(), transport=recorder.transport())


@pytest.mark.asyncio
async def test_exchange_code_posts_form_encoded_grant() -> None:
    recorder = Recorder(
        {
            ("POST", "/api/oauth2/token"): httpx.Response(
                200,
                json={"access_token": "at", "refresh_token": "rt", "expires_in": 604800},
            )
        }
    )

    grant = await _oauth_client(recorder).exchange_code("the-code")

    assert (grant.access_token, grant.refresh_token, grant.expires_in) == ("at", "rt", 604800)
    request = recorder.requests[0]
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    form = parse_qs(request.content.decode())
    assert form == {
        "client_id": ["client"],
        "client_secret": ["secret"],
        "grant_type": ["authorization_code"],
        "code": ["the-code"],
        "redirect_uri": ["https://verify.example.com/api/callback"],
    }


@pytest.mark.asyncio
async def test_exchange_code_failure_carries_status_and_body() -> None:
    recorder = Recorder(
        {("POST", "/api/oauth2/token"): httpx.Response(400, json={"error": "invalid_grant"})}
    )

    with pytest.raises(TokenExchangeError) as excinfo:
        await _oauth_client(recorder).exchange_code("used-code")

    assert excinfo.value.status_code == 400
    assert excinfo.value.body == {"error": "invalid_grant"}


@pytest.mark.asyncio
async def test_exchange_code_rejects_incomplete_payload() -> None:
    recorder = Recorder(
        {("POST", "/api/oauth2/token"): httpx.Response(200, json={"access_token": "at"})}
    )

    with pytest.raises(TokenExchangeError):
        await _oauth_client(recorder).exchange_code("code")


@pytest.mark.asyncio
async def test_exchange_code_wraps_transport_errors() -> None:
    def explode(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = DiscordOAuthClient(
        _settings(), OAuthSettings(), transport=httpx.MockTransport(explode)
    )

    with pytest.raises(TokenExchangeError) as excinfo:
        await client.exchange_code("code")
    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_exchange_code_rejects_html_success_page() -> None:
    recorder = Recorder(
        {
            ("POST", "/api/oauth2/token"): httpx.Response(200, html="<html>maintenance</html>")
        }
    )

    with pytest.raises(TokenExchangeError) as excinfo:
        await _oauth_client(recorder).exchange_code("code")

    assert excinfo.value.status_code == 200
    assert excinfo.value.body == "<html>maintenance</html>"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [["at", "rt"], "token", 42])
async def test_exchange_code_rejects_json_that_is_not_an_object(payload) -> None:
    recorder = Recorder({("POST", "/api/oauth2/token"): httpx.Response(200, json=payload)})

    with pytest.raises(TokenExchangeError) as excinfo:
        await _oauth_client(recorder).exchange_code("code")
    assert excinfo.value.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("expires_in", ["soon", [604800], {"seconds": 1}])
async def test_exchange_code_rejects_non_numeric_lifetime(expires_in) -> None:
    recorder = Recorder(
        {
            ("POST", "/api/oauth2/token"): httpx.Response(
                200,
                json={"access_token": "at", "refresh_token": "rt", "expires_in": expires_in},
            )
        }
    )

    with pytest.raises(TokenExchangeError):
        await _oauth_client(recorder).exchange_code("code")


@pytest.mark.asyncio
async def test_fetch_identity_uses_bearer_token() -> None:
    recorder = Recorder(
        {("GET", "/api/users/@me"): httpx.Response(200, json={"id": "42", "username": "ada"})}
    )

    identity = await _oauth_client(recorder).fetch_identity("at")

    assert (identity.user_id, identity.username) == ("42", "ada")
    assert recorder.requests[0].headers["authorization"] == "Bearer at"


@pytest.mark.asyncio
async def test_fetch_identity_failure() -> None:
    recorder = Recorder(
        {("GET", "/api/users/@me"): httpx.Response(401, json={"message": "401: Unauthorized"})}
    )

    with pytest.raises(IdentityFetchError) as excinfo:
        await _oauth_client(recorder).fetch_identity("expired")
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, html="<html>login</html>"),
        httpx.Response(200, json=["42", "ada"]),
    ],
)
async def test_fetch_identity_rejects_unreadable_payload(response) -> None:
    recorder = Recorder({("GET", "/api/users/@me"): response})

    with pytest.raises(IdentityFetchError) as excinfo:
        await _oauth_client(recorder).fetch_identity("at")
    assert excinfo.value.status_code == 200


def test_authorization_url_carries_state_and_scopes() -> None:
    url = _oauth_client(Recorder({})).build_authorization_url(state="1001")

    query = parse_qs(urlsplit(url).query)
    assert url.startswith(DiscordOAuthClient.AUTHORIZE_URL)
    assert query["state"] == ["1001"]
    assert query["scope"] == ["identify guilds.join"]
    assert query["response_type"] == ["code"]


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [201, 204])
async def test_add_member_accepts_created_and_already_member(status_code: int) -> None:
    recorder = Recorder(
        {("PUT", "/api/guilds/1001/members/42"): httpx.Response(status_code)}
    )

    await _bot_client(recorder).add_member("1001", "42", "at")

    request = recorder.requests[0]
    assert request.headers["authorization"] == "Bot bot-token"
    assert json.loads(request.content) == {"access_token": "at"}


@pytest.mark.asyncio
async def test_add_member_failure() -> None:
    recorder = Recorder(
        {("PUT", "/api/guilds/1001/members/42"): httpx.Response(403, json={"code": 50013})}
    )

    with pytest.raises(MembershipGrantError) as excinfo:
        await _bot_client(recorder).add_member("1001", "42", "at")
    assert excinfo.value.body == {"code": 50013}


@pytest.mark.asyncio
async def test_add_role_failure_is_best_effort_error() -> None:
    recorder = Recorder(
        {("PUT", "/api/guilds/1001/members/42/roles/555"): httpx.Response(403, text="nope")}
    )

    with pytest.raises(RoleAssignmentError) as excinfo:
        await _bot_client(recorder).add_role("1001", "42", "555")
    assert excinfo.value.body == "nope"


@pytest.mark.asyncio
async def test_fetch_guild_name() -> None:
    recorder = Recorder(
        {("GET", "/api/guilds/1001"): httpx.Response(200, json={"id": "1001", "name": "Guild"})}
    )

    assert await _bot_client(recorder).fetch_guild_name("1001") == "Guild"

    missing = Recorder({})
    with pytest.raises(GuildLookupError):
        await _bot_client(missing).fetch_guild_name("1001")


@pytest.mark.asyncio
async def test_send_direct_message_opens_channel_then_posts() -> None:
    recorder = Recorder(
        {
            ("POST", "/api/users/@me/channels"): httpx.Response(200, json={"id": "dm-9"}),
            ("POST", "/api/channels/dm-9/messages"): httpx.Response(200, json={"id": "m-1"}),
        }
    )

    await _bot_client(recorder).send_direct_message("42", "hello")

    open_request, send_request = recorder.requests
    assert json.loads(open_request.content) == {"recipient_id": "42"}
    assert json.loads(send_request.content) == {"content": "hello"}


@pytest.mark.asyncio
async def test_send_direct_message_failure() -> None:
    recorder = Recorder(
        {("POST", "/api/users/@me/channels"): httpx.Response(403, json={"code": 50007})}
    )

    with pytest.raises(NotificationError):
        await _bot_client(recorder).send_direct_message("42", "hello")
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_bot_paths_escape_reserved_characters() -> None:
    recorder = Recorder({})

    with pytest.raises(MembershipGrantError):
        await _bot_client(recorder).add_member("1001/members/7/roles/9?x=", "42", "at")

    request = recorder.requests[0]
    assert request.url.query == b""
    assert b"/roles/" not in request.url.raw_path
    assert request.url.raw_path.startswith(b"/api/guilds/1001%2Fmembers%2F7%2Froles%2F9%3Fx")
    assert request.url.raw_path.endswith(b"/members/42")


@pytest.mark.asyncio
async def test_role_path_escapes_each_segment() -> None:
    recorder = Recorder({})

    with pytest.raises(RoleAssignmentError):
        await _bot_client(recorder).add_role("1001", "../42", "9#frag")

    raw_path = recorder.requests[0].url.raw_path
    assert raw_path.startswith(b"/api/guilds/1001/members/..%2F42/roles/")
    assert raw_path.endswith(b"9%23frag")
