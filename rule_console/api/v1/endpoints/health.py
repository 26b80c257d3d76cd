"""
Health check endpoint for monitoring and diagnostics.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status

from rule_console.core.config import settings
from rule_console.core.registry import get_registry
from rule_console.services.screen_registry import ScreenRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(registry: ScreenRegistry = Depends(get_registry)):
    """
    Health check endpoint that verifies:
    - API is running
    - Rule service answers its health check

    Returns:
        {
            "ok": true,
            "upstream": true,
            "screens": 0
        }
    """
    upstream_ok = await registry.client.ping()

    # If the rule service is down, return 503 Service Unavailable
    if not upstream_ok:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rule service unreachable"
        )

    return {
        "ok": True,
        "upstream": True,
        "screens": len(registry),
        "environment": settings.APP_ENV,
    }
