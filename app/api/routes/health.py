from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Simple health endpoint for monitoring."""
    return {
        "status": "healthy",
        "object_store": "enabled" if settings.GCS_ENABLED else "disabled",
    }
