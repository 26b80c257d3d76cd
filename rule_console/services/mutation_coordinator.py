"""
Mutation coordinator: create, update and delete against a rule collection.

State machine per attempt:

    idle -> submitting -> succeeded | conflict_pending | failed

A conflict response whose entries are all warnings means the write already
took effect, so it is treated as success with warnings. Any error-severity
entry means it did not; the mutation is kept as a PendingOperation until the
user resolves, edits or cancels.
"""
import logging
from typing import Awaitable, Callable, List, Optional

from rule_console.core.errors import MutationConflict, MutationRejected
from rule_console.schemas.conflict import (
    Conflict,
    ConflictClassification,
    PendingOperation,
    RuleDraft,
)
from rule_console.schemas.mutation import MutationSnapshot, MutationStatus
from rule_console.schemas.records import RecordId
from rule_console.services.rule_client import WriteResult

logger = logging.getLogger(__name__)

SubmitFn = Callable[[RuleDraft], Awaitable[WriteResult]]
DeleteFn = Callable[[RecordId], Awaitable[None]]


class MutationCoordinator:
    """Runs one mutation at a time for a screen and tracks its outcome."""

    def __init__(
        self,
        submit_fn: SubmitFn,
        delete_fn: DeleteFn,
        on_success: Callable[[], None],
        name: str = "list",
    ):
        self._submit_fn = submit_fn
        self._delete_fn = delete_fn
        self._on_success = on_success
        self._name = name

        self._status = MutationStatus.IDLE
        self._pending: Optional[PendingOperation] = None
        self._conflicts: List[Conflict] = []
        self._warnings: List[Conflict] = []
        self._error: Optional[str] = None
        self._message: Optional[str] = None
        self._last_draft: Optional[RuleDraft] = None

    @property
    def status(self) -> MutationStatus:
        return self._status

    @property
    def pending(self) -> Optional[PendingOperation]:
        return self._pending

    @property
    def conflicts(self) -> List[Conflict]:
        return list(self._conflicts)

    @property
    def snapshot(self) -> MutationSnapshot:
        return MutationSnapshot(
            status=self._status,
            conflicts=list(self._conflicts),
            warnings=list(self._warnings),
            error=self._error,
            message=self._message,
            pending=self._pending,
            last_draft=self._last_draft,
        )

    def _reset(self) -> None:
        self._pending = None
        self._conflicts = []
        self._warnings = []
        self._error = None
        self._message = None
        self._last_draft = None

    def cancel(self) -> MutationSnapshot:
        """Abandon pending conflicts and return to idle. No effect while a request is in flight."""
        if self._status is MutationStatus.SUBMITTING:
            logger.info(f"[{self._name}] cancel ignored, mutation in flight")
            return self.snapshot
        if self._pending is not None:
            logger.info(f"[{self._name}] pending operation for {self._pending.address} abandoned")
        self._reset()
        self._status = MutationStatus.IDLE
        return self.snapshot

    async def submit(self, draft: RuleDraft) -> MutationSnapshot:
        """Create or update a rule. A second submit while one is in flight is ignored."""
        if self._status is MutationStatus.SUBMITTING:
            logger.warning(f"[{self._name}] submit of {draft.address} ignored, mutation already in flight")
            return self.snapshot
        if self._pending is not None:
            logger.info(f"[{self._name}] new submission replaces pending operation for {self._pending.address}")
        self._reset()
        return await self._attempt(draft, replay=False)

    async def replay_pending(self) -> MutationSnapshot:
        """
        Re-issue the pending operation once, with its original create/update semantics.

        New blocking conflicts leave the coordinator in conflict_pending with the
        new set. A rejected replay restores the previous conflict state and raises
        MutationRejected so the caller can report the cleanup as incomplete.
        """
        if self._pending is None:
            raise MutationRejected("No pending operation to retry")
        if self._status is MutationStatus.SUBMITTING:
            raise MutationRejected("A mutation is already in flight")
        logger.info(f"[{self._name}] replaying {self._pending.address} ({self._pending.status.value})")
        return await self._attempt(self._pending.to_draft(), replay=True)

    async def _attempt(self, draft: RuleDraft, replay: bool) -> MutationSnapshot:
        previous = (self._pending, self._conflicts, self._warnings, self._error)
        self._status = MutationStatus.SUBMITTING
        self._message = None

        try:
            result = await self._submit_fn(draft)
        except MutationConflict as e:
            classification = ConflictClassification.from_conflicts(e.conflicts)
            if not classification.has_errors:
                self._succeed(draft, classification.warnings)
                return self.snapshot
            self._pending = PendingOperation.from_draft(draft)
            self._conflicts = list(e.conflicts)
            self._warnings = list(classification.warnings)
            self._error = e.message
            self._status = MutationStatus.CONFLICT_PENDING
            logger.info(
                f"[{self._name}] {draft.address} blocked by {len(classification.errors)} conflict(s) "
                f"on {', '.join(classification.addresses)}"
            )
            return self.snapshot
        except MutationRejected as e:
            if replay:
                self._pending, self._conflicts, self._warnings, self._error = previous
                self._status = MutationStatus.CONFLICT_PENDING
                raise
            self._pending = None
            self._conflicts = []
            self._warnings = []
            self._error = e.message
            self._last_draft = draft
            self._status = MutationStatus.FAILED
            logger.warning(f"[{self._name}] submit of {draft.address} failed: {e.message}")
            return self.snapshot
        except Exception as e:
            logger.error(f"[{self._name}] unexpected error submitting {draft.address}: {e}", exc_info=True)
            if replay:
                self._pending, self._conflicts, self._warnings, self._error = previous
                self._status = MutationStatus.CONFLICT_PENDING
                raise MutationRejected("Failed to save rule") from e
            self._pending = None
            self._conflicts = []
            self._warnings = []
            self._error = "Failed to save rule"
            self._last_draft = draft
            self._status = MutationStatus.FAILED
            return self.snapshot

        self._succeed(draft, result.warnings)
        return self.snapshot

    def _succeed(self, draft: RuleDraft, warnings: List[Conflict]) -> None:
        self._reset()
        self._warnings = list(warnings)
        verb = "updated" if draft.is_update else "added"
        self._message = f"{draft.address} {verb}" + (" with warnings" if warnings else "")
        self._status = MutationStatus.SUCCEEDED
        logger.info(f"[{self._name}] {self._message}")
        self._on_success()

    async def delete(self, record_id: RecordId) -> MutationSnapshot:
        """Delete one rule. Starting it abandons any pending conflicts."""
        if self._status is MutationStatus.SUBMITTING:
            logger.warning(f"[{self._name}] delete of {record_id} ignored, mutation already in flight")
            return self.snapshot
        self._reset()
        self._status = MutationStatus.SUBMITTING
        try:
            await self._delete_fn(record_id)
        except (MutationRejected, MutationConflict) as e:
            self._error = e.message
            self._status = MutationStatus.FAILED
            logger.warning(f"[{self._name}] delete of {record_id} failed: {e.message}")
            return self.snapshot
        except Exception as e:
            logger.error(f"[{self._name}] unexpected error deleting {record_id}: {e}", exc_info=True)
            self._error = "Failed to delete rule"
            self._status = MutationStatus.FAILED
            return self.snapshot

        self._message = f"Rule {record_id} deleted"
        self._status = MutationStatus.SUCCEEDED
        logger.info(f"[{self._name}] {self._message}")
        self._on_success()
        return self.snapshot
