"""Schemas for overlapping-rule conflicts and the mutations that produce them."""
import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rule_console.schemas.records import RecordId, RuleStatus


class ConflictType(str, enum.Enum):
    """How a proposed address overlaps an existing one."""
    EXACT_MATCH = "exact_match"
    IP_IN_CIDR = "ip_in_cidr"
    CIDR_COVERS_IP = "cidr_covers_ip"
    CIDR_OVERLAPS_CIDR = "cidr_overlaps_cidr"


class ConflictSeverity(str, enum.Enum):
    """error: the write was rejected. warning: the write went through anyway."""
    ERROR = "error"
    WARNING = "warning"


class Conflict(BaseModel):
    """One overlap reported by the rule service in a 409 body."""

    model_config = ConfigDict(frozen=True)

    type: ConflictType
    severity: ConflictSeverity
    conflicting: List[str] = Field(default_factory=list)
    status: str = ""
    message: str = ""

    @property
    def is_blocking(self) -> bool:
        return self.severity is ConflictSeverity.ERROR


class ConflictClassification(BaseModel):
    """Conflicts split by severity, with the addresses that block the write."""

    model_config = ConfigDict(frozen=True)

    errors: List[Conflict] = Field(default_factory=list)
    warnings: List[Conflict] = Field(default_factory=list)
    addresses: List[str] = Field(
        default_factory=list,
        description="Distinct conflicting addresses taken from error-severity conflicts only",
    )

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @classmethod
    def from_conflicts(cls, conflicts: List[Conflict]) -> "ConflictClassification":
        errors = [c for c in conflicts if c.severity is ConflictSeverity.ERROR]
        warnings = [c for c in conflicts if c.severity is ConflictSeverity.WARNING]
        addresses: List[str] = []
        for conflict in errors:
            for address in conflict.conflicting:
                address = address.strip()
                if address and address not in addresses:
                    addresses.append(address)
        return cls(errors=errors, warnings=warnings, addresses=addresses)


class RuleDraft(BaseModel):
    """
    A create or update as submitted from a rule form.

    `edit_id` selects update semantics. `attributes` carries the extra fields
    some list types have (ASN registry, domain, country, name, source).
    """

    model_config = ConfigDict(frozen=True)

    address: str = Field(..., min_length=1, max_length=1024)
    status: RuleStatus = RuleStatus.DENIED
    edit_id: Optional[RecordId] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("address")
    @classmethod
    def strip_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("address must not be blank")
        return v

    @property
    def is_cidr(self) -> bool:
        return "/" in self.address

    @property
    def is_update(self) -> bool:
        return self.edit_id is not None


class PendingOperation(BaseModel):
    """Snapshot of the mutation that was rejected with blocking conflicts."""

    model_config = ConfigDict(frozen=True)

    address: str
    status: RuleStatus
    is_cidr: bool = False
    edit_id: Optional[RecordId] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_draft(cls, draft: RuleDraft) -> "PendingOperation":
        return cls(
            address=draft.address,
            status=draft.status,
            is_cidr=draft.is_cidr,
            edit_id=draft.edit_id,
            attributes=dict(draft.attributes),
        )

    def to_draft(self) -> RuleDraft:
        return RuleDraft(
            address=self.address,
            status=self.status,
            edit_id=self.edit_id,
            attributes=dict(self.attributes),
        )
