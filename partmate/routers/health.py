from datetime import datetime, timezone

from fastapi import APIRouter

from partmate.config import get_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check():
    settings = get_settings()
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "backend": settings.BACKEND_MODE,
        "time": datetime.now(timezone.utc).isoformat(),
    }
