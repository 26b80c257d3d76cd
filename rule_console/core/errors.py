"""
Error taxonomy for list synchronization and rule mutations.

Read failures are transient and never clear data; write failures are
surfaced and never retried without an explicit user action.
"""
from typing import Any, List, Optional


class RuleConsoleError(Exception):
    """Base class for all rule console errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransientFetchError(RuleConsoleError):
    """A read against the rule collection failed (network or server error)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MutationRejected(RuleConsoleError):
    """A write failed for a reason other than a structured conflict."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MutationConflict(RuleConsoleError):
    """A write overlapped existing rules; `conflicts` holds the structured entries."""

    def __init__(self, message: str, conflicts: List[Any], status_code: int = 409):
        super().__init__(message)
        self.conflicts = list(conflicts)
        self.status_code = status_code


class ResolutionPartialFailure(RuleConsoleError):
    """Bulk conflict cleanup did not complete: a lookup, delete or the replay failed."""

    def __init__(self, message: str, report: Any = None):
        super().__init__(message)
        self.report = report


class ResolutionNotAllowed(RuleConsoleError):
    """resolve_and_retry() was called without blocking conflicts, or while already resolving."""


class ScreenNotFound(RuleConsoleError):
    """No screen is registered under the requested id."""
