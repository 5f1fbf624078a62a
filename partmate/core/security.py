from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from partmate.config import get_settings
from partmate.core.errors import Unauthenticated
from partmate.core.identity import Identity

_TOKEN_TTL = timedelta(hours=12)


def get_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def decode_token(token: str, secret: Optional[str] = None) -> dict:
    settings = get_settings()
    secret = secret or settings.JWT_SECRET
    if not secret:
        raise Unauthenticated("JWT auth is not configured")

    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except jwt.PyJWTError as exc:
        raise Unauthenticated("Invalid JWT") from exc


def issue_token(user_id: str, secret: str, *, email: Optional[str] = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {"sub": user_id, "iat": now, "exp": now + _TOKEN_TTL}
    if email:
        payload["email"] = email
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def identity_from_token(token: str, secret: Optional[str] = None) -> Identity:
    payload = decode_token(token, secret)
    user_id = payload.get("sub")
    if not user_id:
        raise Unauthenticated("Token has no subject")
    return Identity(user_id=str(user_id), access_token=token, email=payload.get("email"))


def resolve_identity(session_value, authorization: Optional[str]) -> Optional[Identity]:
    identity = Identity.from_session(session_value)
    if identity is not None:
        return identity

    token = get_bearer_token(authorization)
    if not token:
        return None
    return identity_from_token(token)
