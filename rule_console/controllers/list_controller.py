"""
Per-screen list controller.

One ListController replaces the near-identical state of every rule-list
screen: it owns the query, the debounced search box, the fetch sequencer and
list store, the mutation coordinator, the conflict resolver and the aggregate
counters for one list type. Nothing here is shared between screens.
"""
import logging
from typing import Dict, List, Optional

from rule_console.core.config import Settings, get_settings
from rule_console.schemas.conflict import RuleDraft
from rule_console.schemas.counters import AggregateCounters
from rule_console.schemas.mutation import MutationSnapshot, ResolutionReport
from rule_console.schemas.query import FetchMode, FetchRequest, PaginationMode, QueryState, SortDirection
from rule_console.schemas.records import ListPage, Record, RecordId
from rule_console.schemas.screen import ScreenSnapshot
from rule_console.services.aggregate_counters import AggregateCountersCache
from rule_console.services.conflict_resolver import ConflictResolver
from rule_console.services.debounce import Debouncer
from rule_console.services.descriptors import ListDescriptor
from rule_console.services.fetch_sequencer import FetchSequencer
from rule_console.services.list_store import ListStore
from rule_console.services.mutation_coordinator import MutationCoordinator
from rule_console.services.rule_client import RuleCollectionClient, WriteResult

logger = logging.getLogger(__name__)


class ListController:
    """Query, list, mutation and conflict state for one rule-list screen."""

    def __init__(
        self,
        screen_id: str,
        descriptor: ListDescriptor,
        client: RuleCollectionClient,
        pagination: PaginationMode = PaginationMode.PAGED,
        page_size: Optional[int] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        if page_size is None:
            page_size = (
                settings.INFINITE_PAGE_SIZE if pagination is PaginationMode.INFINITE else settings.DEFAULT_PAGE_SIZE
            )

        self.screen_id = screen_id
        self.descriptor = descriptor
        self.pagination = pagination
        self._client = client
        self._lookup_limit = settings.RESOLVE_LOOKUP_LIMIT
        name = f"{descriptor.name}:{screen_id[:8]}"

        self._query = descriptor.default_query(page_size)
        self.store = ListStore(pagination)
        self.sequencer = FetchSequencer(self.store, self._fetch_page, name=name)
        self.debouncer = Debouncer(settings.search_debounce_seconds, self.set_search)
        self.counters = AggregateCountersCache(self._fetch_counters, name=name)
        self.mutations = MutationCoordinator(self._submit, self._delete, self.invalidate, name=name)
        self.resolver = ConflictResolver(
            self.mutations, self._lookup_address, self._delete, self.invalidate, name=name
        )

    # ----- remote calls bound to this list type -----

    async def _fetch_page(self, request: FetchRequest) -> ListPage:
        params = request.query.to_params(page_index=request.page_index)
        return await self._client.list_page(self.descriptor, params)

    async def _fetch_counters(self) -> AggregateCounters:
        return await self._client.fetch_counters(self.descriptor)

    async def _submit(self, draft: RuleDraft) -> WriteResult:
        return await self._client.submit(self.descriptor, draft)

    async def _delete(self, record_id: RecordId) -> None:
        await self._client.delete(self.descriptor, record_id)

    async def _lookup_address(self, address: str) -> List[Record]:
        params = {"page": 1, "limit": self._lookup_limit, "search": address}
        page = await self._client.list_page(self.descriptor, params)
        return page.items

    # ----- lifecycle -----

    def start(self) -> None:
        """Initial fetch of the list and its counters."""
        self.sequencer.request(self._query, FetchMode.REPLACE, reset=True)
        self.counters.invalidate()

    def close(self) -> None:
        self.debouncer.cancel()

    async def settle(self) -> None:
        """Wait for in-flight reads (list and counters) to land."""
        await self.sequencer.settle()
        await self.counters.settle()

    # ----- query setters -----

    @property
    def query(self) -> QueryState:
        return self._query

    def _apply(self, query: QueryState) -> bool:
        if query == self._query:
            return False
        self._query = query
        self.sequencer.request(query, FetchMode.REPLACE, reset=True)
        return True

    def search_input(self, text: str) -> None:
        """Raw keystroke text; applied once typing pauses."""
        self.debouncer.push(text)

    def set_search(self, term: str) -> bool:
        return self._apply(self._query.with_search(term))

    def set_filter(self, key: str, value: Optional[str]) -> bool:
        self.descriptor.validate_filter(key)
        return self._apply(self._query.with_filter(key, value))

    def set_filters(self, filters: Dict[str, Optional[str]]) -> bool:
        for key in filters:
            self.descriptor.validate_filter(key)
        return self._apply(self._query.with_filters(filters))

    def set_sort(self, field: str, direction: SortDirection) -> bool:
        self.descriptor.validate_sort(field)
        return self._apply(self._query.with_sort(field, direction))

    def toggle_sort(self, field: str) -> bool:
        self.descriptor.validate_sort(field)
        return self._apply(self._query.toggle_sort(field))

    def set_page(self, page_index: int) -> bool:
        if self.pagination is PaginationMode.INFINITE:
            raise ValueError("Infinite lists are paged with load_more(), not page indexes")
        return self._apply(self._query.with_page(page_index))

    def set_page_size(self, page_size: int) -> bool:
        return self._apply(self._query.with_page_size(page_size))

    def clear_filters(self) -> bool:
        self.debouncer.cancel()
        return self._apply(self._query.cleared())

    def update_query(
        self,
        search: Optional[str] = None,
        filters: Optional[Dict[str, Optional[str]]] = None,
        sort_field: Optional[str] = None,
        sort_direction: Optional[SortDirection] = None,
        toggle_sort: Optional[str] = None,
        page_index: Optional[int] = None,
        page_size: Optional[int] = None,
        clear: bool = False,
    ) -> bool:
        """Apply several changes as one query transition (one fetch)."""
        query = self._query
        if clear:
            self.debouncer.cancel()
            query = query.cleared()
        if search is not None:
            query = query.with_search(search)
        if filters is not None:
            for key, value in filters.items():
                self.descriptor.validate_filter(key)
                query = query.with_filter(key, value)
        if toggle_sort is not None:
            self.descriptor.validate_sort(toggle_sort)
            query = query.toggle_sort(toggle_sort)
        elif sort_field is not None or sort_direction is not None:
            field = sort_field or query.sort_field
            self.descriptor.validate_sort(field)
            query = query.with_sort(field, sort_direction or query.sort_direction)
        if page_size is not None:
            query = query.with_page_size(page_size)
        if page_index is not None:
            if self.pagination is PaginationMode.INFINITE:
                raise ValueError("Infinite lists are paged with load_more(), not page indexes")
            query = query.with_page(page_index)
        return self._apply(query)

    def load_more(self) -> Optional[FetchRequest]:
        """Sentinel reached: fetch the next page unless one is in flight or the list is exhausted."""
        if not self.store.can_load_more():
            return None
        return self.sequencer.request(self._query, FetchMode.APPEND)

    def refresh(self) -> FetchRequest:
        """Refetch the current query and the counters, keeping current items visible."""
        self.counters.invalidate()
        return self.sequencer.request(self._query, FetchMode.REPLACE)

    def invalidate(self) -> None:
        """After a successful write: refetch the list at the current query and the counters."""
        self.refresh()

    # ----- mutations -----

    async def submit(self, draft: RuleDraft) -> MutationSnapshot:
        return await self.mutations.submit(draft)

    def cancel(self) -> MutationSnapshot:
        return self.mutations.cancel()

    async def delete(self, record_id: RecordId) -> MutationSnapshot:
        return await self.mutations.delete(record_id)

    async def resolve_and_retry(self) -> ResolutionReport:
        return await self.resolver.resolve_and_retry()

    # ----- presentation -----

    def snapshot(self) -> ScreenSnapshot:
        return ScreenSnapshot(
            screen_id=self.screen_id,
            list_type=self.descriptor.name,
            pagination=self.pagination,
            query=self._query,
            pending_search=self.debouncer.pending,
            listing=self.store.snapshot,
            mutation=self.mutations.snapshot,
            resolution=self.resolver.snapshot,
            counters=self.counters.snapshot,
        )
