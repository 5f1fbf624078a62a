import secrets
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from partmate.backend import build_backend
from partmate.config import Settings, get_settings
from partmate.core.constants import MEDIA_ROUTE
from partmate.core.errors import InventoryError
from partmate.core.logging import setup_logging
from partmate.database import Base, SessionLocal, engine
from partmate.routers import auth_router, dashboard_router, health_router, parts_router
from partmate.services.inventory_client import InventoryClient


setup_logging()
settings: Settings = get_settings()

if settings.BACKEND_MODE == "local":
    Base.metadata.create_all(bind=engine)
    Path(settings.MEDIA_DIR).mkdir(parents=True, exist_ok=True)

backend = build_backend(settings, session_factory=SessionLocal)
inventory_client = InventoryClient(
    backend,
    table=settings.PARTS_TABLE,
    bucket=settings.IMAGE_BUCKET,
)
prefix = settings.base_path.rstrip("/")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    try:
        yield
    finally:
        engine.dispose()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.state.backend = backend
app.state.inventory_client = inventory_client
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET or settings.JWT_SECRET or secrets.token_urlsafe(32),
    session_cookie=settings.SESSION_COOKIE,
    same_site="lax",
    https_only=settings.ENVIRONMENT.lower() != "local",
)
if settings.BACKEND_MODE == "local":
    app.mount(prefix + MEDIA_ROUTE, StaticFiles(directory=settings.MEDIA_DIR), name="media")

app.include_router(health_router, prefix=prefix)
app.include_router(auth_router, prefix=prefix)
app.include_router(dashboard_router, prefix=prefix)
app.include_router(parts_router, prefix=prefix)


@app.exception_handler(InventoryError)
async def inventory_error_handler(_request: Request, exc: InventoryError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/", include_in_schema=False)
def root():
    return RedirectResponse(url=prefix + "/dashboard", status_code=302)


__all__ = ["app"]
