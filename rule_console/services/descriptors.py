"""
List descriptors: the per-list-type configuration of the generic list controller.

Every rule list speaks the same REST shape (`GET <collection>`,
`GET <collection>/stats`, `POST <item>`, `PUT/DELETE <item>/{id}`) and differs
only in paths, wire key names, filters and sortable columns.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from rule_console.schemas.conflict import RuleDraft
from rule_console.schemas.query import QueryState, SortDirection
from rule_console.schemas.records import Record, RuleStatus

logger = logging.getLogger(__name__)


class ListDescriptor(BaseModel):
    """Configuration for one rule list type."""

    model_config = ConfigDict(frozen=True)

    name: str
    title: str
    collection: str  # e.g. "/ips"
    item: str  # e.g. "/ip"
    id_field: str = "ID"
    value_field: str
    status_field: str = "Status"
    filter_fields: Tuple[str, ...] = ("status",)
    sort_fields: Tuple[str, ...] = ("id", "status")
    default_sort_field: str = "id"
    default_sort_direction: SortDirection = SortDirection.DESC
    supports_conflicts: bool = False
    cidr_field: Optional[str] = None
    attribute_fields: Tuple[str, ...] = ()
    facet_path: Optional[str] = None  # extra count endpoint, e.g. "/asns/filter-stats"

    @property
    def stats_path(self) -> str:
        return f"{self.collection}/stats"

    def item_path(self, record_id: Any) -> str:
        return f"{self.item}/{record_id}"

    def default_query(self, page_size: int) -> QueryState:
        return QueryState(
            sort_field=self.default_sort_field,
            sort_direction=self.default_sort_direction,
            page_size=page_size,
        )

    def validate_filter(self, key: str) -> None:
        if key not in self.filter_fields:
            raise ValueError(
                f"Unknown filter '{key}' for {self.name} list. Must be one of: {', '.join(self.filter_fields)}"
            )

    def validate_sort(self, field: str) -> None:
        if field not in self.sort_fields:
            raise ValueError(
                f"Unknown sort field '{field}' for {self.name} list. Must be one of: {', '.join(self.sort_fields)}"
            )

    def build_record(self, payload: Dict[str, Any]) -> Record:
        """Turn one wire object into a Record."""
        record_id = _lookup(payload, self.id_field)
        if record_id is None:
            raise ValueError(f"{self.name} record without '{self.id_field}': {payload!r}")
        value = _lookup(payload, self.value_field)
        status = _lookup(payload, self.status_field)
        return Record(
            id=record_id,
            value="" if value is None else str(value),
            status=RuleStatus(str(status).lower()),
            fields=dict(payload),
        )

    def build_body(self, draft: RuleDraft) -> Dict[str, Any]:
        """Request body for a create or update."""
        body: Dict[str, Any] = {
            self.value_field: draft.address,
            self.status_field: draft.status.value,
        }
        if self.cidr_field:
            body[self.cidr_field] = draft.is_cidr
        for key, value in draft.attributes.items():
            if key in self.attribute_fields:
                body[key] = value
            else:
                logger.debug(f"Dropping attribute '{key}' not used by {self.name} rules")
        return body


def _lookup(payload: Dict[str, Any], key: str) -> Any:
    """Exact key first, then case-insensitive; wire casing differs between list types."""
    if key in payload:
        return payload[key]
    lowered = key.lower()
    for candidate, value in payload.items():
        if candidate.lower() == lowered:
            return value
    return None


DESCRIPTORS: Dict[str, ListDescriptor] = {
    d.name: d
    for d in (
        ListDescriptor(
            name="ip",
            title="IP Addresses",
            collection="/ips",
            item="/ip",
            value_field="Address",
            filter_fields=("status", "type"),
            sort_fields=("id", "address", "status"),
            supports_conflicts=True,
            cidr_field="IsCIDR",
        ),
        ListDescriptor(
            name="email",
            title="Email Addresses",
            collection="/emails",
            item="/email",
            value_field="Address",
            sort_fields=("id", "address", "status"),
        ),
        ListDescriptor(
            name="user_agent",
            title="User Agents",
            collection="/user-agents",
            item="/user-agent",
            value_field="UserAgent",
            sort_fields=("id", "user_agent", "status"),
        ),
        ListDescriptor(
            name="country",
            title="Countries",
            collection="/countries",
            item="/country",
            value_field="Code",
            sort_fields=("id", "code", "name", "status"),
            default_sort_field="name",
            default_sort_direction=SortDirection.ASC,
        ),
        ListDescriptor(
            name="charset",
            title="Charsets",
            collection="/charsets",
            item="/charset",
            value_field="Charset",
            sort_fields=("id", "charset", "status"),
        ),
        ListDescriptor(
            name="username",
            title="Usernames",
            collection="/usernames",
            item="/username",
            value_field="Username",
            sort_fields=("id", "username", "status"),
        ),
        ListDescriptor(
            name="asn",
            title="Autonomous Systems",
            collection="/asns",
            item="/asn",
            id_field="id",
            value_field="asn",
            status_field="status",
            filter_fields=("status", "rir", "country"),
            sort_fields=("id", "asn", "rir", "domain", "cc", "asname", "status", "source"),
            attribute_fields=("rir", "domain", "cc", "asname", "source"),
            facet_path="/asns/filter-stats",
        ),
    )
}


def get_descriptor(name: str) -> ListDescriptor:
    """Look up a list type, raising ValueError for unknown names."""
    try:
        return DESCRIPTORS[name]
    except KeyError:
        raise ValueError(f"Unknown list type '{name}'. Must be one of: {', '.join(DESCRIPTORS)}") from None
