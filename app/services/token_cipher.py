"""Symmetric encryption utilities for protecting stored tokens."""

from __future__ import annotations

import base64
import hashlib
from typing import Sequence

from cryptography.fernet import Fernet, InvalidToken, MultiFernet


def _derive_key(secret: str) -> Fernet:
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


class TokenCipherService:
    """Encrypt and decrypt OAuth tokens using Fernet keys derived from secrets.

    The first secret encrypts; every secret is tried on decrypt so a secret can
    be rotated without re-verifying every user.
    """

    def __init__(self, *, secret: str, previous_secrets: Sequence[str] = ()) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        keys = [_derive_key(secret)]
        keys.extend(_derive_key(item) for item in previous_secrets if item)
        self._fernet = MultiFernet(keys)

    @classmethod
    def from_setting(cls, value: str) -> "TokenCipherService":
        """Build from a comma-separated setting, newest secret first."""
        secrets = [item.strip() for item in value.split(",") if item.strip()]
        if not secrets:
            raise ValueError("Token encryption secret must be provided.")
        return cls(secret=secrets[0], previous_secrets=secrets[1:])

    def encrypt(self, plaintext: str) -> str:
        token = self._fernet.encrypt(plaintext.encode("utf-8"))
        return token.decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt token; invalid ciphertext provided."
            ) from exc
        return plaintext.decode("utf-8")


__all__ = ["TokenCipherService"]
