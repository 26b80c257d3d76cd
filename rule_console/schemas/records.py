"""Schemas for rule records and list pages."""
import enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RuleStatus(str, enum.Enum):
    """Rule status values shared by every list type."""
    ALLOWED = "allowed"
    DENIED = "denied"
    WHITELISTED = "whitelisted"


RecordId = Union[int, str]


class Record(BaseModel):
    """
    Read-only client copy of a rule held by the remote collection.

    `value` is the list's primary field (address, user agent, country code, ...),
    `fields` keeps the wire object untouched for the presentation layer.
    """

    model_config = ConfigDict(frozen=True)

    id: RecordId
    value: str
    status: RuleStatus
    fields: Dict[str, Any] = Field(default_factory=dict)


class ListPage(BaseModel):
    """Response of a collection read."""
    items: List[Record] = Field(default_factory=list)
    total: int = Field(0, ge=0)


class ListSnapshot(BaseModel):
    """What the presentation layer renders for one list."""

    model_config = ConfigDict(frozen=True)

    items: List[Record] = Field(default_factory=list)
    total: int = 0
    has_more: bool = False
    loading: bool = False
    error: Optional[str] = None
    generation: int = 0
