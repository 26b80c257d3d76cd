"""
Registry of open list screens.

Each screen owns its own ListController; the registry only maps ids to
controllers and shares the upstream HTTP client between them.
"""
import logging
import uuid
from collections import OrderedDict
from typing import Optional

from rule_console.controllers.list_controller import ListController
from rule_console.core.config import Settings, get_settings
from rule_console.core.errors import ScreenNotFound
from rule_console.schemas.query import PaginationMode
from rule_console.services.descriptors import get_descriptor
from rule_console.services.rule_client import RuleCollectionClient

logger = logging.getLogger(__name__)


class ScreenRegistry:
    """Creates, finds and disposes screens. Oldest screens are evicted past MAX_SCREENS."""

    def __init__(self, client: RuleCollectionClient, settings: Optional[Settings] = None):
        self.client = client
        self._settings = settings or get_settings()
        self._screens: "OrderedDict[str, ListController]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._screens)

    def open(
        self,
        list_type: str,
        pagination: PaginationMode = PaginationMode.PAGED,
        page_size: Optional[int] = None,
    ) -> ListController:
        """Create a screen and start its first fetch. Must run on the event loop."""
        descriptor = get_descriptor(list_type)
        screen_id = str(uuid.uuid4())
        controller = ListController(
            screen_id,
            descriptor,
            self.client,
            pagination=pagination,
            page_size=page_size,
            settings=self._settings,
        )
        self._screens[screen_id] = controller

        while len(self._screens) > self._settings.MAX_SCREENS:
            evicted_id, evicted = self._screens.popitem(last=False)
            evicted.close()
            logger.info(f"Evicted screen {evicted_id} ({evicted.descriptor.name})")

        controller.start()
        logger.info(f"Opened screen {screen_id}: {descriptor.name} ({pagination.value})")
        return controller

    def get(self, screen_id: str) -> ListController:
        try:
            controller = self._screens[screen_id]
        except KeyError:
            raise ScreenNotFound(f"Screen {screen_id} not found") from None
        self._screens.move_to_end(screen_id)
        return controller

    def close(self, screen_id: str) -> None:
        controller = self._screens.pop(screen_id, None)
        if controller is None:
            raise ScreenNotFound(f"Screen {screen_id} not found")
        controller.close()
        logger.info(f"Closed screen {screen_id}")

    def close_all(self) -> None:
        for controller in self._screens.values():
            controller.close()
        self._screens.clear()
