"""Value types shared by the list, mutation and conflict machinery."""
from rule_console.schemas.query import FetchMode, FetchRequest, PaginationMode, QueryState, SortDirection
from rule_console.schemas.records import ListPage, ListSnapshot, Record, RuleStatus
from rule_console.schemas.conflict import (
    Conflict,
    ConflictClassification,
    ConflictSeverity,
    ConflictType,
    PendingOperation,
    RuleDraft,
)
from rule_console.schemas.counters import AggregateCounters, CountersSnapshot
from rule_console.schemas.mutation import (
    MutationSnapshot,
    MutationStatus,
    ResolutionOutcome,
    ResolutionReport,
    ResolutionSnapshot,
)

__all__ = [
    "FetchMode",
    "FetchRequest",
    "PaginationMode",
    "QueryState",
    "SortDirection",
    "ListPage",
    "ListSnapshot",
    "Record",
    "RuleStatus",
    "Conflict",
    "ConflictClassification",
    "ConflictSeverity",
    "ConflictType",
    "PendingOperation",
    "RuleDraft",
    "AggregateCounters",
    "CountersSnapshot",
    "MutationSnapshot",
    "MutationStatus",
    "ResolutionOutcome",
    "ResolutionReport",
    "ResolutionSnapshot",
]
