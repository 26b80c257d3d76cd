"""Schemas for query-independent aggregate counts."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from rule_console.schemas.records import RuleStatus

_STATUS_KEYS = tuple(status.value for status in RuleStatus)


class AggregateCounters(BaseModel):
    """Whole-collection counts used for filter chip labels."""

    model_config = ConfigDict(frozen=True)

    by_status: Dict[str, int] = Field(default_factory=lambda: {key: 0 for key in _STATUS_KEYS})
    by_type: Dict[str, int] = Field(default_factory=dict)
    total: int = 0
    breakdowns: Dict[str, Dict[str, int]] = Field(default_factory=dict)

    @classmethod
    def from_stats(
        cls,
        stats: Dict[str, Any],
        breakdowns: Optional[Dict[str, Any]] = None,
    ) -> "AggregateCounters":
        """
        Build counters from a `<collection>/stats` body.

        Status keys go to `by_status`, `total` is taken as-is, and any other
        integer key (`single`, `cidr`, ...) is a type breakdown. Nested count
        maps from a facet endpoint (`rir_counts`, `country_counts`) land in
        `breakdowns`.
        """
        by_status = {key: int(stats.get(key) or 0) for key in _STATUS_KEYS}
        by_type = {
            key: int(value)
            for key, value in stats.items()
            if key not in _STATUS_KEYS
            and key != "total"
            and isinstance(value, (int, float))
            and not isinstance(value, bool)
        }
        total = stats.get("total")
        if total is None:
            total = sum(by_status.values())

        nested: Dict[str, Dict[str, int]] = {}
        for name, counts in (breakdowns or {}).items():
            if isinstance(counts, dict):
                nested[name] = {str(k): int(v or 0) for k, v in counts.items()}

        return cls(by_status=by_status, by_type=by_type, total=int(total), breakdowns=nested)


class CountersSnapshot(BaseModel):
    """Counters plus their refresh state."""

    model_config = ConfigDict(frozen=True)

    counters: AggregateCounters = Field(default_factory=AggregateCounters)
    loading: bool = False
    error: Optional[str] = None
