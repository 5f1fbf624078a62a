from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

from partmate.core.errors import Unauthenticated


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, threaded explicitly through every client call."""

    user_id: str
    access_token: str
    email: Optional[str] = None

    def to_session(self) -> dict:
        return asdict(self)

    @classmethod
    def from_session(cls, value) -> Optional["Identity"]:
        if not isinstance(value, dict):
            return None
        user_id = value.get("user_id")
        access_token = value.get("access_token")
        if not user_id or not access_token:
            return None
        return cls(user_id=str(user_id), access_token=str(access_token), email=value.get("email"))


def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise Unauthenticated()
    return identity
