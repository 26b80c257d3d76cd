"""
List store: the client-side view of one rule list for the current query.

Paged screens hold a single replaceable page. Infinite screens hold an
accumulation buffer that grows by appended pages and is de-duplicated by id.
Generation filtering happens in the fetch sequencer before anything reaches
the store; the store itself rejects append commits whose offset no longer
matches the buffer.
"""
import logging
from typing import List, Set

from rule_console.schemas.query import FetchMode, FetchRequest, PaginationMode
from rule_console.schemas.records import ListPage, ListSnapshot, Record, RecordId

logger = logging.getLogger(__name__)


class ListStore:
    """Holds the ListSnapshot for one screen."""

    def __init__(self, pagination: PaginationMode = PaginationMode.PAGED):
        self.pagination = pagination
        self._snapshot = ListSnapshot()
        # Raw rows received since the last reset; the offset of the next append
        self._fetched = 0

    @property
    def snapshot(self) -> ListSnapshot:
        return self._snapshot

    @property
    def fetched_count(self) -> int:
        return self._fetched

    def _update(self, **changes) -> None:
        self._snapshot = self._snapshot.model_copy(update=changes)

    def begin(self, request: FetchRequest, reset: bool = False) -> None:
        """
        Mark `request` as the one in flight.

        `reset` (a query change on an infinite screen) empties the buffer right
        away so a late append for the old query can never line up with it.
        Without a reset the current items stay visible until the response lands.
        """
        if reset and self.pagination is PaginationMode.INFINITE:
            self._fetched = 0
            self._update(items=[], total=0, has_more=False)
        self._update(loading=True, error=None, generation=request.generation)

    def commit(self, request: FetchRequest, page: ListPage) -> bool:
        """Apply a response. Returns False when an append no longer lines up with the buffer."""
        has_more = len(page.items) == request.query.page_size

        if request.mode is FetchMode.APPEND:
            if self._fetched != request.offset:
                logger.debug(
                    f"Dropping append for generation {request.generation}: "
                    f"offset {request.offset} != buffer {self._fetched}"
                )
                return False
            items = _merge_unique(self._snapshot.items, page.items)
            self._fetched += len(page.items)
        else:
            items = _merge_unique([], page.items)
            self._fetched = len(page.items)

        self._snapshot = ListSnapshot(
            items=items,
            total=page.total,
            has_more=has_more,
            loading=False,
            error=None,
            generation=request.generation,
        )
        return True

    def fail(self, request: FetchRequest, message: str) -> None:
        """Record a read failure; items already shown stay as they are."""
        self._update(loading=False, error=message, generation=request.generation)

    def can_load_more(self) -> bool:
        return (
            self.pagination is PaginationMode.INFINITE
            and self._snapshot.has_more
            and not self._snapshot.loading
        )


def _merge_unique(existing: List[Record], incoming: List[Record]) -> List[Record]:
    seen: Set[RecordId] = {record.id for record in existing}
    merged = list(existing)
    for record in incoming:
        if record.id in seen:
            continue
        seen.add(record.id)
        merged.append(record)
    return merged
