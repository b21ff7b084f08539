from fastapi import APIRouter, Depends

from datachat.api.deps import get_app_settings
from datachat.core.config import Settings

router = APIRouter(tags=["health"])


@router.get("/health")
@router.get("/api/health")
@router.get("/api/v1/health")
async def health_check(settings: Settings = Depends(get_app_settings)) -> dict:
    return {
        "status": "healthy",
        "service": settings.app_name,
        "environment": settings.app_env,
    }
