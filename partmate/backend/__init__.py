import secrets

from partmate.backend.base import Backend
from partmate.backend.local import LocalBackend
from partmate.backend.rest import RestBackend


def build_backend(settings, session_factory=None) -> Backend:
    if settings.BACKEND_MODE == "rest":
        return RestBackend(
            settings.BACKEND_URL,
            settings.BACKEND_ANON_KEY,
            timeout=settings.BACKEND_TIMEOUT_SECONDS,
        )

    if session_factory is None:
        from partmate.database.session import SessionLocal

        session_factory = SessionLocal
    public_base_url = settings.PUBLIC_BASE_URL.rstrip("/") + settings.base_path.rstrip("/")
    return LocalBackend(
        session_factory,
        settings.MEDIA_DIR,
        public_base_url=public_base_url,
        token_secret=settings.JWT_SECRET or secrets.token_urlsafe(32),
    )


__all__ = ["Backend", "LocalBackend", "RestBackend", "build_backend"]
