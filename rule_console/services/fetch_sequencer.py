"""
Fetch sequencer: one remote read per query change, newest generation wins.

Reads are fire-and-forget asyncio tasks. Nothing is cancelled on the wire;
a response whose generation is no longer the latest is dropped when it
arrives, so a slow answer to an old query can never overwrite a newer one.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Set

from rule_console.core.errors import TransientFetchError
from rule_console.schemas.query import FetchMode, FetchRequest, QueryState
from rule_console.schemas.records import ListPage
from rule_console.services.list_store import ListStore

logger = logging.getLogger(__name__)

FetchPage = Callable[[FetchRequest], Awaitable[ListPage]]


class FetchSequencer:
    """Issues generation-tagged reads and commits only the current one."""

    def __init__(self, store: ListStore, fetch_page: FetchPage, name: str = "list"):
        self._store = store
        self._fetch_page = fetch_page
        self._name = name
        self._generation = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def last_generation(self) -> int:
        return self._generation

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def is_current(self, request: FetchRequest) -> bool:
        return request.generation == self._generation

    def request(
        self,
        query: QueryState,
        mode: FetchMode = FetchMode.REPLACE,
        reset: bool = False,
    ) -> FetchRequest:
        """Allocate the next generation, mark it in flight and start the read."""
        self._generation += 1
        offset = self._store.fetched_count if mode is FetchMode.APPEND else 0
        request = FetchRequest(generation=self._generation, query=query, mode=mode, offset=offset)
        self._store.begin(request, reset=reset)

        task = asyncio.get_running_loop().create_task(self._run(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.debug(f"[{self._name}] gen={request.generation} {mode.value} page={request.page_index} issued")
        return request

    async def _run(self, request: FetchRequest) -> None:
        try:
            page = await self._fetch_page(request)
        except TransientFetchError as e:
            self._fail(request, e.message)
            return
        except Exception as e:
            logger.error(f"[{self._name}] gen={request.generation} unexpected fetch error: {e}", exc_info=True)
            self._fail(request, "Failed to fetch items")
            return

        if not self.is_current(request):
            logger.debug(
                f"[{self._name}] gen={request.generation} discarded, latest is {self._generation}"
            )
            return
        self._store.commit(request, page)

    def _fail(self, request: FetchRequest, message: str) -> None:
        if not self.is_current(request):
            logger.debug(f"[{self._name}] gen={request.generation} failed after being superseded")
            return
        logger.warning(f"[{self._name}] gen={request.generation} fetch failed: {message}")
        self._store.fail(request, message)

    async def settle(self) -> None:
        """Wait until every issued read has completed (including reads issued meanwhile)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
