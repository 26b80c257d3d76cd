"""
Aggregate counters: whole-collection counts for filter chip labels.

Always read from the stats endpoint, never derived from the filtered list.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from rule_console.core.errors import TransientFetchError
from rule_console.schemas.counters import AggregateCounters, CountersSnapshot

logger = logging.getLogger(__name__)

FetchCounters = Callable[[], Awaitable[AggregateCounters]]


class AggregateCountersCache:
    """Read-through cache refreshed on start, on demand, and after mutations."""

    def __init__(self, fetch_counters: FetchCounters, name: str = "list"):
        self._fetch = fetch_counters
        self._name = name
        self._snapshot = CountersSnapshot()
        self._generation = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def snapshot(self) -> CountersSnapshot:
        return self._snapshot

    async def refresh(self) -> Optional[AggregateCounters]:
        """Fetch counts now. A refresh superseded by a newer one is ignored."""
        self._generation += 1
        generation = self._generation
        self._snapshot = self._snapshot.model_copy(update={"loading": True})
        try:
            counters = await self._fetch()
        except TransientFetchError as e:
            if generation == self._generation:
                logger.warning(f"[{self._name}] counters refresh failed: {e.message}")
                self._snapshot = self._snapshot.model_copy(update={"loading": False, "error": e.message})
            return None
        except Exception as e:
            if generation == self._generation:
                logger.error(f"[{self._name}] unexpected counters error: {e}", exc_info=True)
                self._snapshot = self._snapshot.model_copy(update={"loading": False, "error": "Failed to fetch counters"})
            return None

        if generation != self._generation:
            return None
        self._snapshot = CountersSnapshot(counters=counters, loading=False, error=None)
        return counters

    def invalidate(self) -> None:
        """Schedule a refresh without waiting for it."""
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def settle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
