"""
API v1 router.
"""
from fastapi import APIRouter

from rule_console.api.v1.endpoints import health, screens

api_router = APIRouter()

# Health check endpoint (no prefix, so it's /api/v1/health)
api_router.include_router(health.router, tags=["health"])

api_router.include_router(screens.list_types_router, prefix="/list-types", tags=["list-types"])
api_router.include_router(screens.router, prefix="/screens", tags=["screens"])
