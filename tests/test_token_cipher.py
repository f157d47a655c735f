try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from app.services.token_cipher import TokenCipherService


def test_encrypted_refresh_token_is_recoverable() -> None:
    cipher = TokenCipherService(secret="super-secret-key")

    encrypted = cipher.encrypt("discord-refresh-token")

    assert encrypted != "discord-refresh-token"
    assert cipher.decrypt(encrypted) == "discord-refresh-token"


def test_rotated_secret_still_decrypts_old_tokens() -> None:
    old = TokenCipherService(secret="old-secret")
    ciphertext = old.encrypt("stored-access-token")

    rotated = TokenCipherService.from_setting("new-secret, old-secret")

    assert rotated.decrypt(ciphertext) == "stored-access-token"
    with pytest.raises(ValueError):
        old.decrypt(rotated.encrypt("fresh"))


def test_rejects_bad_ciphertext_and_empty_secret() -> None:
    cipher = TokenCipherService(secret="another-secret")

    with pytest.raises(ValueError):
        cipher.decrypt("not-valid")
    with pytest.raises(ValueError):
        TokenCipherService.from_setting(" , ")
