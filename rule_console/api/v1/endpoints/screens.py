"""
Screen endpoints: the presentation layer's handle on one rule-list screen.

Query changes return immediately with `listing.loading` set; the read runs
in the background. Pass `settle=true` to a snapshot request to wait for it.
"""
from typing import List, Union

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from rule_console.core.registry import get_registry
from rule_console.schemas.conflict import RuleDraft
from rule_console.schemas.mutation import ResolutionReport
from rule_console.schemas.screen import (
    ListTypeResponse,
    QueryUpdateRequest,
    ScreenCreateRequest,
    ScreenSnapshot,
    SearchInputRequest,
)
from rule_console.services.descriptors import DESCRIPTORS
from rule_console.services.screen_registry import ScreenRegistry

router = APIRouter()
list_types_router = APIRouter()


class ResolutionResponse(BaseModel):
    """Response schema for a resolve-and-retry run."""
    report: ResolutionReport
    screen: ScreenSnapshot


def _record_id(raw: str) -> Union[int, str]:
    return int(raw) if raw.isdigit() else raw


@list_types_router.get("/", response_model=List[ListTypeResponse])
async def list_types():
    """Supported rule lists with their filters and sortable columns."""
    return [
        ListTypeResponse(
            name=d.name,
            title=d.title,
            filter_fields=list(d.filter_fields),
            sort_fields=list(d.sort_fields),
            default_sort_field=d.default_sort_field,
            default_sort_direction=d.default_sort_direction,
            supports_conflicts=d.supports_conflicts,
        )
        for d in DESCRIPTORS.values()
    ]


@router.post("/", response_model=ScreenSnapshot, status_code=status.HTTP_201_CREATED)
async def open_screen(
    request: ScreenCreateRequest,
    registry: ScreenRegistry = Depends(get_registry),
):
    """Open a list screen and start its first fetch."""
    controller = registry.open(request.list_type, pagination=request.pagination, page_size=request.page_size)
    return controller.snapshot()


@router.get("/{screen_id}", response_model=ScreenSnapshot)
async def get_screen(
    screen_id: str,
    settle: bool = Query(False, description="Wait for in-flight reads before answering"),
    registry: ScreenRegistry = Depends(get_registry),
):
    controller = registry.get(screen_id)
    if settle:
        await controller.settle()
    return controller.snapshot()


@router.delete("/{screen_id}", status_code=status.HTTP_200_OK)
async def close_screen(
    screen_id: str,
    registry: ScreenRegistry = Depends(get_registry),
):
    registry.close(screen_id)
    return {"message": "Screen closed", "screen_id": screen_id}


@router.put("/{screen_id}/query", response_model=ScreenSnapshot)
async def update_query(
    screen_id: str,
    request: QueryUpdateRequest,
    registry: ScreenRegistry = Depends(get_registry),
):
    """
    Change search, filters, sort or page. Any change other than the page
    index goes back to the first page (or empties the scroll buffer).
    """
    controller = registry.get(screen_id)
    # Unknown filter or sort fields raise ValueError (422)
    controller.update_query(
        search=request.search,
        filters=request.filters,
        sort_field=request.sort_field,
        sort_direction=request.sort_direction,
        toggle_sort=request.toggle_sort,
        page_index=request.page_index,
        page_size=request.page_size,
        clear=request.clear,
    )
    return controller.snapshot()


@router.post("/{screen_id}/search-input", response_model=ScreenSnapshot, status_code=status.HTTP_202_ACCEPTED)
async def search_input(
    screen_id: str,
    request: SearchInputRequest,
    registry: ScreenRegistry = Depends(get_registry),
):
    """Feed the raw search box text; it is applied after the debounce window."""
    controller = registry.get(screen_id)
    controller.search_input(request.text)
    return controller.snapshot()


@router.post("/{screen_id}/load-more", response_model=ScreenSnapshot)
async def load_more(
    screen_id: str,
    registry: ScreenRegistry = Depends(get_registry),
):
    """Scroll sentinel reached. No-op while loading or when the list is exhausted."""
    controller = registry.get(screen_id)
    controller.load_more()
    return controller.snapshot()


@router.post("/{screen_id}/refresh", response_model=ScreenSnapshot)
async def refresh(
    screen_id: str,
    registry: ScreenRegistry = Depends(get_registry),
):
    controller = registry.get(screen_id)
    controller.refresh()
    return controller.snapshot()


@router.post("/{screen_id}/mutations", response_model=ScreenSnapshot)
async def submit_mutation(
    screen_id: str,
    draft: RuleDraft,
    registry: ScreenRegistry = Depends(get_registry),
):
    """
    Create a rule, or update one when `edit_id` is set.

    Blocking conflicts are returned in `mutation.conflicts` with status
    `conflict_pending`; resolve them with `/conflicts/resolve` or cancel.
    """
    controller = registry.get(screen_id)
    await controller.submit(draft)
    return controller.snapshot()


@router.post("/{screen_id}/mutations/cancel", response_model=ScreenSnapshot)
async def cancel_mutation(
    screen_id: str,
    registry: ScreenRegistry = Depends(get_registry),
):
    controller = registry.get(screen_id)
    controller.cancel()
    return controller.snapshot()


@router.delete("/{screen_id}/records/{record_id}", response_model=ScreenSnapshot)
async def delete_record(
    screen_id: str,
    record_id: str,
    registry: ScreenRegistry = Depends(get_registry),
):
    controller = registry.get(screen_id)
    await controller.delete(_record_id(record_id))
    return controller.snapshot()


@router.post("/{screen_id}/conflicts/resolve", response_model=ResolutionResponse)
async def resolve_conflicts(
    screen_id: str,
    registry: ScreenRegistry = Depends(get_registry),
):
    """
    Delete every rule blocking the pending operation, then retry it once.

    Responds 409 when nothing blocking is pending or a resolution is already running.
    """
    controller = registry.get(screen_id)
    report = await controller.resolve_and_retry()
    return ResolutionResponse(report=report, screen=controller.snapshot())
