from partmate.routers.auth import router as auth_router
from partmate.routers.dashboard import router as dashboard_router
from partmate.routers.health import router as health_router
from partmate.routers.parts import router as parts_router

__all__ = [
    "auth_router",
    "dashboard_router",
    "health_router",
    "parts_router",
]
