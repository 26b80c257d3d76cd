"""Query model: the immutable description of which slice of a rule list is wanted."""
import enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SortDirection(str, enum.Enum):
    """Sort directions understood by the rule service."""
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class PaginationMode(str, enum.Enum):
    """How a screen pages through its collection."""
    PAGED = "paged"  # bounded table with page controls
    INFINITE = "infinite"  # growing buffer fed by scroll


class FetchMode(str, enum.Enum):
    """How a fetched page is committed to the list store."""
    REPLACE = "replace"
    APPEND = "append"


class QueryState(BaseModel):
    """
    Filters, search term, sort and page position for one list screen.

    Instances are frozen. Every transition returns a new QueryState, and every
    transition except `with_page` puts the query back on its first page.
    """

    model_config = ConfigDict(frozen=True)

    search_term: str = ""
    filters: Dict[str, str] = Field(default_factory=dict)
    sort_field: str = "id"
    sort_direction: SortDirection = SortDirection.DESC
    page_index: int = Field(0, ge=0)
    page_size: int = Field(10, ge=1, le=1000)

    def _evolve(self, **changes: Any) -> "QueryState":
        changes.setdefault("page_index", 0)
        return self.model_copy(update=changes)

    def with_search(self, term: Optional[str]) -> "QueryState":
        return self._evolve(search_term=(term or "").strip())

    def with_filter(self, key: str, value: Optional[str]) -> "QueryState":
        """Set one filter; an empty or None value removes it."""
        filters = dict(self.filters)
        if value is None or str(value).strip() == "":
            filters.pop(key, None)
        else:
            filters[key] = str(value).strip()
        return self._evolve(filters=filters)

    def with_filters(self, filters: Dict[str, Optional[str]]) -> "QueryState":
        """Replace the whole filter map, dropping empty values."""
        cleaned = {
            key: str(value).strip()
            for key, value in filters.items()
            if value is not None and str(value).strip() != ""
        }
        return self._evolve(filters=cleaned)

    def with_sort(self, field: str, direction: SortDirection) -> "QueryState":
        return self._evolve(sort_field=field, sort_direction=SortDirection(direction))

    def toggle_sort(self, field: str) -> "QueryState":
        """Clicking the active column flips direction; a new column starts ascending."""
        if field == self.sort_field:
            return self.with_sort(field, self.sort_direction.flipped())
        return self.with_sort(field, SortDirection.ASC)

    def with_page(self, page_index: int) -> "QueryState":
        if page_index < 0:
            raise ValueError("page_index must be >= 0")
        return self.model_copy(update={"page_index": page_index})

    def with_page_size(self, page_size: int) -> "QueryState":
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        return self._evolve(page_size=page_size)

    def cleared(self) -> "QueryState":
        """Drop search and filters, keeping sort and page size."""
        return self._evolve(search_term="", filters={})

    def to_params(self, page_index: Optional[int] = None) -> Dict[str, Any]:
        """
        Render the query string for a collection read.

        The rule service numbers pages from 1. An empty search is omitted.
        """
        index = self.page_index if page_index is None else page_index
        params: Dict[str, Any] = {
            "page": index + 1,
            "limit": self.page_size,
            "orderBy": self.sort_field,
            "order": self.sort_direction.value,
        }
        if self.search_term:
            params["search"] = self.search_term
        params.update(self.filters)
        return params


class FetchRequest(BaseModel):
    """One remote read, tagged with the generation that issued it."""

    model_config = ConfigDict(frozen=True)

    generation: int = Field(..., ge=1)
    query: QueryState
    mode: FetchMode = FetchMode.REPLACE
    offset: int = Field(0, ge=0, description="Rows already accumulated when the request was issued")

    @property
    def page_index(self) -> int:
        """Page to ask for: the query's page, or the next page after `offset` rows."""
        if self.mode is FetchMode.APPEND:
            return self.offset // self.query.page_size
        return self.query.page_index
