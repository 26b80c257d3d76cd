"""Schemas for mutation and conflict-resolution state."""
import enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from rule_console.schemas.conflict import Conflict, PendingOperation, RuleDraft
from rule_console.schemas.records import RecordId


class MutationStatus(str, enum.Enum):
    """Mutation coordinator states."""
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    CONFLICT_PENDING = "conflict_pending"
    FAILED = "failed"


class MutationSnapshot(BaseModel):
    """Mutation state rendered next to the rule form."""

    model_config = ConfigDict(frozen=True)

    status: MutationStatus = MutationStatus.IDLE
    conflicts: List[Conflict] = Field(default_factory=list)
    warnings: List[Conflict] = Field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None
    pending: Optional[PendingOperation] = None
    last_draft: Optional[RuleDraft] = Field(
        None, description="Draft of a failed submission, kept so the form can be corrected"
    )


class ResolutionOutcome(str, enum.Enum):
    """How a resolve-and-retry run ended."""
    SUCCEEDED = "succeeded"
    NEW_CONFLICTS = "new_conflicts"
    PARTIAL_FAILURE = "partial_failure"


class ResolutionReport(BaseModel):
    """What a resolve-and-retry run actually did."""

    model_config = ConfigDict(frozen=True)

    outcome: ResolutionOutcome
    deleted_ids: List[RecordId] = Field(default_factory=list)
    failed_ids: List[RecordId] = Field(default_factory=list)
    skipped_addresses: List[str] = Field(
        default_factory=list,
        description="Conflicting addresses with no matching row (already removed elsewhere)",
    )
    retried: bool = False
    error: Optional[str] = None


class ResolutionSnapshot(BaseModel):
    """Conflict resolver state."""

    model_config = ConfigDict(frozen=True)

    is_resolving: bool = False
    error: Optional[str] = None
    last_report: Optional[ResolutionReport] = None
