from fastapi import APIRouter

from erp_portal.config import settings

router = APIRouter(tags=["Health"])


@router.get("/api/health")
async def health() -> dict:
    return {
        "status": "ok",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
