from __future__ import annotations

import hashlib
import hmac

from partmate.config import get_settings


def local_auth_enabled() -> bool:
    settings = get_settings()
    return bool(settings.LOCAL_USERNAME and (settings.LOCAL_PASSWORD or settings.LOCAL_PASSWORD_HASH))


def hash_password(password: str, salt: str, rounds: int) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        rounds,
    )
    return digest.hex()


def verify_local_credentials(username: str, password: str) -> bool:
    settings = get_settings()
    if not local_auth_enabled():
        return False

    username = (username or "").strip()
    password = (password or "").strip()

    expected_username = settings.LOCAL_USERNAME.strip()
    if not hmac.compare_digest(username.casefold(), expected_username.casefold()):
        return False

    if settings.LOCAL_PASSWORD_HASH:
        if not settings.LOCAL_PASSWORD_SALT:
            raise ValueError("Local password salt is not configured.")
        computed = hash_password(
            password,
            settings.LOCAL_PASSWORD_SALT,
            settings.LOCAL_PBKDF2_ROUNDS,
        )
        return hmac.compare_digest(computed, settings.LOCAL_PASSWORD_HASH)

    if settings.LOCAL_PASSWORD:
        return hmac.compare_digest(password, settings.LOCAL_PASSWORD.strip())

    return False
