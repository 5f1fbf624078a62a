import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from partmate.core.errors import InventoryError
from partmate.dependencies import SESSION_IDENTITY_KEY, get_backend, get_identity
from partmate.schemas.auth import LoginRequest, SessionRead

router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=SessionRead)
def login(payload: LoginRequest, request: Request, backend=Depends(get_backend)):
    try:
        identity = backend.sign_in(payload.email.strip(), payload.password)
    except InventoryError as exc:
        logger.info("Sign-in rejected for %s: %s", payload.email, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    request.session[SESSION_IDENTITY_KEY] = identity.to_session()
    return SessionRead(**identity.to_session())


@router.get("/session", response_model=SessionRead)
def current_session(identity=Depends(get_identity)):
    if identity is None:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": "Not authenticated"},
        )
    return SessionRead(**identity.to_session())


@router.post("/logout")
def logout(request: Request, backend=Depends(get_backend), identity=Depends(get_identity)):
    if identity is not None:
        try:
            backend.sign_out(identity)
        except InventoryError as exc:
            logger.warning("Sign-out failed for %s: %s", identity.user_id, exc.message)
    request.session.clear()
    return {"status": "signed_out"}
