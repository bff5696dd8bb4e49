"""
Health Check Router
Liveness endpoints; they never touch DynamoDB or Telegram
"""
from datetime import datetime, timezone

from fastapi import APIRouter

from app.core.config import settings

router = APIRouter()
root_router = APIRouter()


@root_router.get("/healthz")
async def liveness():
    return {"status": "ok"}


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
