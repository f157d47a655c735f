"""Service layer exports."""

from .guild_state import GuildStateCodec
from .token_cipher import TokenCipherService
from .verification import PipelineRun, StepOutcome, VerificationService
from .verification_records import GuildConfigStore, VerificationRecordStore

__all__ = [
    "GuildConfigStore",
    "GuildStateCodec",
    "PipelineRun",
    "StepOutcome",
    "TokenCipherService",
    "VerificationRecordStore",
    "VerificationService",
]
