"""
Screen registry lifecycle and FastAPI dependency.
"""
from fastapi import Request

from rule_console.core.config import get_settings
from rule_console.services.rule_client import RuleCollectionClient
from rule_console.services.screen_registry import ScreenRegistry


def create_registry() -> ScreenRegistry:
    """Build a registry wired to the configured rule service."""
    settings = get_settings()
    return ScreenRegistry(RuleCollectionClient.from_settings(settings), settings=settings)


def get_registry(request: Request) -> ScreenRegistry:
    """Dependency for getting the screen registry created at startup."""
    return request.app.state.registry
