"""
Orchestration of a single Discord verification attempt.

The callback runs a fixed sequence of dependent steps. Steps up to and
including the record write are fatal: the first failure stops the run and the
user sees the failure page. The steps after it are best-effort: failures are
logged and the user still sees the success page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, TypedDict

from app.clients.discord_bot import DiscordBotClient
from app.clients.discord_oauth import DiscordIdentity, DiscordOAuthClient, TokenGrant
from app.core.errors import (
    CallbackValidationError,
    RoleAssignmentError,
    UpstreamError,
    VerificationError,
)
from app.models.verification import StoredVerification, VerificationRecord
from app.services.guild_state import GuildStateCodec
from app.services.rendering import (
    RenderedPage,
    render_failure,
    render_invalid_state,
    render_missing_params,
    render_success,
)
from app.services.verification_records import GuildConfigStore, VerificationRecordStore

logger = logging.getLogger(__name__)

DEFAULT_GUILD_NAME = "the server"


def build_confirmation_message(username: str, guild_name: str) -> str:
    return (
        "✅ **Verified Successfully!**\n\n"
        f"{username}, you have been successfully verified in **{guild_name}**!"
    )


class VerificationState(TypedDict, total=False):
    """Values handed from one step to the next."""

    code: str
    guild_id: str
    grant: TokenGrant
    identity: DiscordIdentity
    stored: StoredVerification
    role_id: Optional[str]
    guild_name: str


StepFn = Callable[[VerificationState], Awaitable[None]]


@dataclass(frozen=True)
class PipelineStep:
    name: str
    run: StepFn
    fatal: bool = True


@dataclass(frozen=True)
class StepOutcome:
    name: str
    succeeded: bool
    fatal: bool
    error: Optional[str] = None


@dataclass
class PipelineRun:
    state: VerificationState
    outcomes: List[StepOutcome] = field(default_factory=list)

    @property
    def failed_step(self) -> Optional[str]:
        for outcome in self.outcomes:
            if outcome.fatal and not outcome.succeeded:
                return outcome.name
        return None

    @property
    def succeeded(self) -> bool:
        return self.failed_step is None

    def outcome(self, name: str) -> Optional[StepOutcome]:
        return next((item for item in self.outcomes if item.name == name), None)


class VerificationPipeline:
    """Runs steps in order, stopping at the first fatal failure."""

    def __init__(self, steps: List[PipelineStep]) -> None:
        self._steps = steps

    async def run(self, state: VerificationState) -> PipelineRun:
        result = PipelineRun(state=state)
        log_extra = {"guild_id": state.get("guild_id")}

        for step in self._steps:
            try:
                await step.run(state)
            except Exception as exc:
                result.outcomes.append(
                    StepOutcome(name=step.name, succeeded=False, fatal=step.fatal, error=str(exc))
                )
                context = {**log_extra, "step": step.name}
                if isinstance(exc, UpstreamError):
                    context.update(exc.log_context())
                if not isinstance(exc, VerificationError):
                    logger.exception("Unexpected error in verification step", extra=context)
                elif step.fatal:
                    logger.error("Verification step failed: %s", exc, extra=context)
                else:
                    logger.warning("Best-effort step failed: %s", exc, extra=context)

                if step.fatal:
                    return result
                continue

            result.outcomes.append(StepOutcome(name=step.name, succeeded=True, fatal=step.fatal))
            logger.info("Verification step completed", extra={**log_extra, "step": step.name})

        return result


class VerificationService:
    """Completes the OAuth callback for one user and one guild."""

    def __init__(
        self,
        *,
        oauth_client: DiscordOAuthClient,
        bot_client: DiscordBotClient,
        record_store: VerificationRecordStore,
        guild_configs: GuildConfigStore,
        state_codec: GuildStateCodec,
    ) -> None:
        self._oauth = oauth_client
        self._bot = bot_client
        self._records = record_store
        self._guild_configs = guild_configs
        self._state_codec = state_codec
        self._pipeline = VerificationPipeline(
            [
                PipelineStep("exchange_code", self._exchange_code),
                PipelineStep("fetch_identity", self._fetch_identity),
                PipelineStep("add_member", self._add_member),
                PipelineStep("upsert_record", self._upsert_record),
                PipelineStep("assign_role", self._assign_role, fatal=False),
                PipelineStep("fetch_guild_name", self._fetch_guild_name, fatal=False),
                PipelineStep("notify", self._notify, fatal=False),
            ]
        )

    async def handle_callback(self, code: Optional[str], state: Optional[str]) -> RenderedPage:
        """Validate the callback parameters, verify, and render the outcome."""
        if not code or not state:
            return render_missing_params()

        try:
            guild_id = self._state_codec.guild_id_from(state)
        except CallbackValidationError as exc:
            logger.warning("Rejected OAuth state: %s", exc)
            return render_invalid_state()

        run = await self.verify(code=code, guild_id=guild_id)
        if not run.succeeded:
            return render_failure()

        identity = run.state["identity"]
        return render_success(identity.username, run.state.get("guild_name", DEFAULT_GUILD_NAME))

    async def verify(self, *, code: str, guild_id: str) -> PipelineRun:
        state: VerificationState = {
            "code": code,
            "guild_id": guild_id,
            "guild_name": DEFAULT_GUILD_NAME,
        }
        run = await self._pipeline.run(state)
        if run.succeeded:
            logger.info(
                "Verification completed",
                extra={"guild_id": guild_id, "user_id": state["identity"].user_id},
            )
        return run

    async def _exchange_code(self, state: VerificationState) -> None:
        state["grant"] = await self._oauth.exchange_code(state["code"])

    async def _fetch_identity(self, state: VerificationState) -> None:
        state["identity"] = await self._oauth.fetch_identity(state["grant"].access_token)

    async def _add_member(self, state: VerificationState) -> None:
        await self._bot.add_member(
            state["guild_id"], state["identity"].user_id, state["grant"].access_token
        )

    async def _upsert_record(self, state: VerificationState) -> None:
        grant = state["grant"]
        record = VerificationRecord.from_grant(
            user_id=state["identity"].user_id,
            guild_id=state["guild_id"],
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_in=grant.expires_in,
        )
        state["stored"] = self._records.upsert_verification(record)

    async def _assign_role(self, state: VerificationState) -> None:
        state["role_id"] = await self.maybe_assign_role(
            state["guild_id"], state["identity"].user_id
        )

    async def maybe_assign_role(self, guild_id: str, user_id: str) -> Optional[str]:
        """Grant the guild's verified role, if one is configured.

        Returns the granted role id, or ``None`` when the guild has no role set.
        """
        try:
            config = self._guild_configs.get(guild_id)
        except Exception as exc:
            raise RoleAssignmentError(f"Failed to load guild config: {exc}") from exc

        if config is None or not config.verified_role_id:
            return None
        await self._bot.add_role(guild_id, user_id, config.verified_role_id)
        return config.verified_role_id

    async def _fetch_guild_name(self, state: VerificationState) -> None:
        state["guild_name"] = await self._bot.fetch_guild_name(state["guild_id"])

    async def _notify(self, state: VerificationState) -> None:
        identity = state["identity"]
        await self.notify(identity.user_id, identity.username, state["guild_name"])

    async def notify(self, user_id: str, username: str, guild_name: str) -> None:
        await self._bot.send_direct_message(
            user_id, build_confirmation_message(username, guild_name)
        )


__all__ = [
    "DEFAULT_GUILD_NAME",
    "PipelineRun",
    "PipelineStep",
    "StepOutcome",
    "VerificationPipeline",
    "VerificationService",
    "VerificationState",
    "build_confirmation_message",
]
