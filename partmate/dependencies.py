import logging
from typing import Optional

from fastapi import Header, Request

from partmate.core.errors import Unauthenticated
from partmate.core.security import resolve_identity
from partmate.services.inventory_client import InventoryClient

logger = logging.getLogger(__name__)

SESSION_IDENTITY_KEY = "identity"


def get_backend(request: Request):
    return request.app.state.backend


def get_client(request: Request) -> InventoryClient:
    return request.app.state.inventory_client


def get_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
):
    """Caller identity from the login session or a bearer token; ``None`` when absent."""
    try:
        return resolve_identity(request.session.get(SESSION_IDENTITY_KEY), authorization)
    except Unauthenticated as exc:
        logger.info("Ignoring bearer token: %s", exc.message)
        return None


__all__ = ["SESSION_IDENTITY_KEY", "get_backend", "get_client", "get_identity"]
