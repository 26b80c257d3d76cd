"""
Pytest configuration and fixtures.
"""
import os

# Keep test runs from writing log files; must be set before settings load
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from unittest.mock import patch

from rule_console.controllers.list_controller import ListController
from rule_console.core.config import Settings
from rule_console.main import app
from rule_console.schemas.query import PaginationMode
from rule_console.services.descriptors import get_descriptor
from rule_console.services.rule_client import RuleCollectionClient
from rule_console.services.screen_registry import ScreenRegistry

from fake_rule_service import FakeRuleService


@pytest.fixture(scope="function")
def settings():
    """Settings pointed at the fake rule service with the shortest allowed debounce."""
    return Settings(
        RULE_SERVICE_URL="http://rules.test/api",
        SEARCH_DEBOUNCE_MS=300,
        DEFAULT_PAGE_SIZE=10,
        INFINITE_PAGE_SIZE=3,
        LOG_TO_FILE=False,
    )


@pytest.fixture(scope="function")
def service():
    """A fresh in-memory rule service per test."""
    return FakeRuleService()


@pytest_asyncio.fixture
async def rule_client(service, settings):
    """RuleCollectionClient whose HTTP traffic goes to the fake service."""
    client = RuleCollectionClient.from_settings(settings, transport=service.transport)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def ip_controller(rule_client, settings):
    """
    Paged IP list screen with its initial fetch already settled.
    """
    controller = ListController("screen-ip", get_descriptor("ip"), rule_client, settings=settings)
    controller.start()
    await controller.settle()
    yield controller
    await controller.settle()
    controller.close()


@pytest_asyncio.fixture
async def infinite_ip_controller(rule_client, settings):
    """Infinite-scroll IP list screen (page size 3), initial fetch not yet settled."""
    controller = ListController(
        "screen-scroll",
        get_descriptor("ip"),
        rule_client,
        pagination=PaginationMode.INFINITE,
        settings=settings,
    )
    yield controller
    await controller.settle()
    controller.close()


@pytest.fixture(scope="function")
def client(service, settings):
    """
    Create a test client whose screens talk to the fake rule service.

    The lifespan's registry factory is patched, so startup and shutdown
    run as in production. The context manager keeps one event loop alive
    for the whole test, which the screens' background reads rely on.
    """
    registry = ScreenRegistry(
        RuleCollectionClient.from_settings(settings, transport=service.transport),
        settings=settings,
    )
    with patch("rule_console.main.create_registry", return_value=registry):
        with TestClient(app) as test_client:
            yield test_client
