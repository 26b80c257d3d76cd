"""Request and response schemas for the screen API."""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from rule_console.schemas.counters import CountersSnapshot
from rule_console.schemas.mutation import MutationSnapshot, ResolutionSnapshot
from rule_console.schemas.query import PaginationMode, QueryState, SortDirection
from rule_console.schemas.records import ListSnapshot


class ScreenCreateRequest(BaseModel):
    """Request schema for opening a list screen."""
    list_type: str = Field(..., description="ip, email, user_agent, country, charset, username or asn")
    pagination: PaginationMode = Field(PaginationMode.PAGED, description="paged table or infinite scroll")
    page_size: Optional[int] = Field(None, ge=1, le=500, description="Defaults to the configured size for the mode")


class QueryUpdateRequest(BaseModel):
    """
    Partial query update. Omitted fields keep their value.

    `toggle_sort` mimics clicking a column header and wins over
    `sort_field`/`sort_direction` when both are given.
    """
    search: Optional[str] = None
    filters: Optional[Dict[str, Optional[str]]] = None
    sort_field: Optional[str] = None
    sort_direction: Optional[SortDirection] = None
    toggle_sort: Optional[str] = None
    page_index: Optional[int] = Field(None, ge=0)
    page_size: Optional[int] = Field(None, ge=1, le=500)
    clear: bool = Field(False, description="Reset search and filters before applying the rest")


class SearchInputRequest(BaseModel):
    """Raw text of the search box, sent on every keystroke."""
    text: str = ""


class ScreenSnapshot(BaseModel):
    """Everything the presentation layer needs to render one screen."""
    screen_id: str
    list_type: str
    pagination: PaginationMode
    query: QueryState
    pending_search: Optional[str] = Field(None, description="Typed text not yet applied by the debouncer")
    listing: ListSnapshot
    mutation: MutationSnapshot
    resolution: ResolutionSnapshot
    counters: CountersSnapshot


class ListTypeResponse(BaseModel):
    """Description of one supported list type."""
    name: str
    title: str
    filter_fields: List[str]
    sort_fields: List[str]
    default_sort_field: str
    default_sort_direction: SortDirection
    supports_conflicts: bool
