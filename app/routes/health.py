# app/routes/health.py
"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends

from app.config import settings
from app.dependencies import get_gateway
from app.services.openai_service import TextGenerationGateway

router = APIRouter()


@router.get("/healthz")
async def healthz(gateway: TextGenerationGateway = Depends(get_gateway)):
    """Basic health check - always returns 200 if app is running."""
    return {
        "status": "ok",
        "service": "couples-coach-api",
        "environment": settings.environment,
        "openai_configured": gateway.configured,
    }
