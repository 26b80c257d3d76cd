"""
Async HTTP client for the rule-collection service.

Wraps httpx.AsyncClient and maps transport and HTTP failures onto the rule
console error taxonomy:

- reads raise TransientFetchError
- writes answered with a `conflicts` list raise MutationConflict
- any other failed write raises MutationRejected
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from rule_console.core.config import Settings, get_settings
from rule_console.core.errors import MutationConflict, MutationRejected, TransientFetchError
from rule_console.schemas.conflict import Conflict, RuleDraft
from rule_console.schemas.counters import AggregateCounters
from rule_console.schemas.records import ListPage, RecordId
from rule_console.services.descriptors import ListDescriptor

logger = logging.getLogger(__name__)


class WriteResult(BaseModel):
    """Outcome of an accepted create or update."""
    body: Optional[Dict[str, Any]] = None
    warnings: List[Conflict] = Field(default_factory=list)


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(response: httpx.Response, fallback: str) -> str:
    """Pull a user-facing message out of an error response."""
    if response.status_code == 401:
        return "Authentication failed. Check RULE_SERVICE_API_KEY."
    if response.status_code == 403:
        return "Access denied by the rule service."
    body = _json_or_none(response)
    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return f"{fallback} (HTTP {response.status_code})"


def _parse_conflicts(raw: Any) -> List[Conflict]:
    if not isinstance(raw, list):
        return []
    return [Conflict.model_validate(entry) for entry in raw]


class RuleCollectionClient:
    """Reads and writes one rule service; shared by every screen."""

    def __init__(self, http_client: httpx.AsyncClient):
        self._http = http_client

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "RuleCollectionClient":
        settings = settings or get_settings()
        http_client = httpx.AsyncClient(
            base_url=settings.RULE_SERVICE_URL,
            headers=settings.upstream_headers(),
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )
        return cls(http_client)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def ping(self) -> bool:
        """True when the rule service answers its lightweight health check."""
        try:
            response = await self._http.get("/health/simple")
        except httpx.HTTPError as e:
            logger.warning(f"Rule service health check failed: {type(e).__name__}: {e}")
            return False
        return response.status_code < 400

    # ----- reads -----

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._http.get(path, params=params)
        except httpx.HTTPError as e:
            logger.warning(f"GET {path} failed: {type(e).__name__}: {e}")
            raise TransientFetchError(f"Rule service unreachable: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response, f"Failed to fetch {path}")
            logger.warning(f"GET {path} -> {response.status_code}: {message}")
            raise TransientFetchError(message, status_code=response.status_code)

        body = _json_or_none(response)
        if body is None:
            raise TransientFetchError(f"Rule service returned a non-JSON body for {path}")
        return body

    async def list_page(self, descriptor: ListDescriptor, params: Dict[str, Any]) -> ListPage:
        """Read one page of a collection."""
        body = await self._get_json(descriptor.collection, params=params)

        # Some list endpoints answer with a bare array instead of {items, total}
        if isinstance(body, list):
            raw_items, total = body, len(body)
        elif isinstance(body, dict):
            raw_items = body.get("items") or []
            total = body.get("total")
            if total is None:
                total = len(raw_items)
        else:
            raise TransientFetchError(f"Unexpected list payload from {descriptor.collection}")

        try:
            items = [descriptor.build_record(raw) for raw in raw_items]
        except (ValueError, TypeError) as e:
            raise TransientFetchError(f"Malformed {descriptor.name} record: {e}") from e
        return ListPage(items=items, total=int(total))

    async def fetch_counters(self, descriptor: ListDescriptor) -> AggregateCounters:
        """Whole-collection counts, plus facet counts where the list has them."""
        stats = await self._get_json(descriptor.stats_path)
        if not isinstance(stats, dict):
            raise TransientFetchError(f"Unexpected stats payload from {descriptor.stats_path}")
        facets = None
        if descriptor.facet_path:
            facets = await self._get_json(descriptor.facet_path)
            if not isinstance(facets, dict):
                facets = None
        try:
            return AggregateCounters.from_stats(stats, facets)
        except (ValueError, TypeError) as e:
            raise TransientFetchError(f"Malformed stats from {descriptor.stats_path}: {e}") from e

    # ----- writes -----

    async def _write(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> WriteResult:
        try:
            response = await self._http.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {type(e).__name__}: {e}")
            raise MutationRejected(f"Rule service unreachable: {e}") from e

        body = _json_or_none(response)
        raw_conflicts = body.get("conflicts") if isinstance(body, dict) else None

        try:
            conflicts = _parse_conflicts(raw_conflicts)
        except ValidationError as e:
            if response.status_code >= 400:
                logger.error(f"{method} {path}: unreadable conflicts payload: {e}")
                raise MutationRejected("Rule service returned malformed conflicts", response.status_code) from e
            # The write went through; unreadable warnings are not worth failing it
            logger.warning(f"{method} {path}: ignoring unreadable warnings payload: {e}")
            conflicts = []

        if response.status_code >= 400:
            message = _error_message(response, f"{method} {path} failed")
            if conflicts:
                logger.info(f"{method} {path} -> {response.status_code} with {len(conflicts)} conflict(s)")
                raise MutationConflict(message, conflicts, status_code=response.status_code)
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise MutationRejected(message, status_code=response.status_code)

        return WriteResult(body=body if isinstance(body, dict) else None, warnings=conflicts)

    async def submit(self, descriptor: ListDescriptor, draft: RuleDraft) -> WriteResult:
        """POST a new rule, or PUT when the draft carries an edit id."""
        body = descriptor.build_body(draft)
        if draft.is_update:
            return await self._write("PUT", descriptor.item_path(draft.edit_id), json=body)
        return await self._write("POST", descriptor.item, json=body)

    async def delete(self, descriptor: ListDescriptor, record_id: RecordId) -> None:
        await self._write("DELETE", descriptor.item_path(record_id))
