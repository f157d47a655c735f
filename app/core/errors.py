"""
Error taxonomy for the verification callback.

Fatal errors abort the pipeline and surface as a generic failure page.
Best-effort errors are logged where they occur and never change the outcome.
"""

from __future__ import annotations

from typing import Any, Optional


class VerificationError(Exception):
    """Base class for every error raised while verifying a user."""


class CallbackValidationError(VerificationError):
    """The callback request is missing or carries unusable parameters."""


class UpstreamError(VerificationError):
    """A Discord API call failed.

    Carries the provider status code and response body when available so
    operators can diagnose the failure from logs.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def log_context(self) -> dict[str, Any]:
        return {"status_code": self.status_code, "body": self.body}


class FatalUpstreamError(UpstreamError):
    """An upstream step the verification cannot complete without."""


class TokenExchangeError(FatalUpstreamError):
    """Raised when the token endpoint rejects the authorization code."""


class IdentityFetchError(FatalUpstreamError):
    """Raised when the current user cannot be resolved from the access token."""


class MembershipGrantError(FatalUpstreamError):
    """Raised when the bot cannot add the user to the guild."""


class PersistenceError(VerificationError):
    """The verification record could not be written or read."""


class BestEffortError(UpstreamError):
    """A follow-up step failed after the user was verified."""


class RoleAssignmentError(BestEffortError):
    """The verified role could not be looked up or granted."""


class GuildLookupError(BestEffortError):
    """The guild display name could not be fetched."""


class NotificationError(BestEffortError):
    """The confirmation DM could not be delivered."""


__all__ = [
    "BestEffortError",
    "CallbackValidationError",
    "FatalUpstreamError",
    "GuildLookupError",
    "IdentityFetchError",
    "MembershipGrantError",
    "NotificationError",
    "PersistenceError",
    "RoleAssignmentError",
    "TokenExchangeError",
    "UpstreamError",
    "VerificationError",
]
