"""
Conflict resolver: bulk-remove blocking rules, then replay the mutation once.

The sequence is best effort, not a transaction. Deletes run concurrently and
are all awaited before the single replay. A replay that meets new conflicts
stops and waits for the user again; nothing here loops.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from rule_console.core.errors import (
    MutationConflict,
    MutationRejected,
    ResolutionNotAllowed,
    ResolutionPartialFailure,
    TransientFetchError,
)
from rule_console.schemas.conflict import Conflict, ConflictClassification, PendingOperation
from rule_console.schemas.mutation import (
    MutationStatus,
    ResolutionOutcome,
    ResolutionReport,
    ResolutionSnapshot,
)
from rule_console.schemas.records import Record, RecordId
from rule_console.services.mutation_coordinator import MutationCoordinator

logger = logging.getLogger(__name__)

LookupFn = Callable[[str], Awaitable[List[Record]]]
DeleteFn = Callable[[RecordId], Awaitable[None]]


def classify(conflicts: List[Conflict]) -> ConflictClassification:
    """Split conflicts into blocking errors and informational warnings."""
    return ConflictClassification.from_conflicts(conflicts)


def _same_address(left: str, right: str) -> bool:
    return left.strip().lower() == right.strip().lower()


class ConflictResolver:
    """Drives resolve-and-retry for the pending operation of one coordinator."""

    def __init__(
        self,
        coordinator: MutationCoordinator,
        lookup_fn: LookupFn,
        delete_fn: DeleteFn,
        on_cleanup: Callable[[], None],
        name: str = "list",
    ):
        self._coordinator = coordinator
        self._lookup_fn = lookup_fn
        self._delete_fn = delete_fn
        self._on_cleanup = on_cleanup
        self._name = name

        self._resolving = False
        self._error: Optional[str] = None
        self._last_report: Optional[ResolutionReport] = None

    @property
    def is_resolving(self) -> bool:
        return self._resolving

    @property
    def snapshot(self) -> ResolutionSnapshot:
        return ResolutionSnapshot(
            is_resolving=self._resolving,
            error=self._error,
            last_report=self._last_report,
        )

    async def resolve_and_retry(self) -> ResolutionReport:
        """
        Delete every rule named by an error-severity conflict, then replay once.

        Raises:
            ResolutionNotAllowed: nothing blocking is pending, or a run is already active.
        """
        if self._resolving:
            raise ResolutionNotAllowed("Conflict resolution is already running")

        pending = self._coordinator.pending
        if self._coordinator.status is not MutationStatus.CONFLICT_PENDING or pending is None:
            raise ResolutionNotAllowed("There are no pending conflicts to resolve")
        classification = classify(self._coordinator.conflicts)
        if not classification.has_errors:
            raise ResolutionNotAllowed("Only warnings are pending; nothing blocks the write")

        self._resolving = True
        self._error = None
        try:
            report = await self._resolve(pending, classification)
        except ResolutionPartialFailure as e:
            logger.warning(f"[{self._name}] conflict resolution incomplete: {e.message}")
            report = e.report
        finally:
            self._resolving = False

        self._last_report = report
        self._error = report.error if report.outcome is ResolutionOutcome.PARTIAL_FAILURE else None
        return report

    async def _resolve(
        self,
        pending: PendingOperation,
        classification: ConflictClassification,
    ) -> ResolutionReport:
        addresses = classification.addresses
        logger.info(f"[{self._name}] resolving {len(addresses)} conflicting address(es) for {pending.address}")

        # (a) addresses -> row ids
        lookups = await asyncio.gather(
            *(self._lookup_fn(address) for address in addresses),
            return_exceptions=True,
        )
        record_ids: List[RecordId] = []
        skipped: List[str] = []
        lookup_errors: List[str] = []
        for address, result in zip(addresses, lookups):
            if isinstance(result, TransientFetchError):
                lookup_errors.append(f"{address}: {result.message}")
                continue
            if isinstance(result, BaseException):
                raise result
            matches = [record.id for record in result if _same_address(record.value, address)]
            if not matches:
                logger.info(f"[{self._name}] {address} no longer exists, skipping")
                skipped.append(address)
            for record_id in matches:
                if record_id not in record_ids:
                    record_ids.append(record_id)

        if lookup_errors:
            message = "Could not look up conflicting rules: " + "; ".join(lookup_errors)
            raise ResolutionPartialFailure(
                message,
                ResolutionReport(
                    outcome=ResolutionOutcome.PARTIAL_FAILURE,
                    skipped_addresses=skipped,
                    error=message,
                ),
            )

        # (b) delete all, concurrently, and wait for every one
        results = await asyncio.gather(
            *(self._delete_fn(record_id) for record_id in record_ids),
            return_exceptions=True,
        )
        deleted: List[RecordId] = []
        failed: List[RecordId] = []
        for record_id, result in zip(record_ids, results):
            if isinstance(result, (MutationRejected, MutationConflict)):
                logger.warning(f"[{self._name}] delete of conflicting rule {record_id} failed: {result.message}")
                failed.append(record_id)
            elif isinstance(result, BaseException):
                raise result
            else:
                deleted.append(record_id)

        def partial(message: str, retried: bool) -> ResolutionPartialFailure:
            if deleted:
                self._on_cleanup()
            return ResolutionPartialFailure(
                message,
                ResolutionReport(
                    outcome=ResolutionOutcome.PARTIAL_FAILURE,
                    deleted_ids=deleted,
                    failed_ids=failed,
                    skipped_addresses=skipped,
                    retried=retried,
                    error=message,
                ),
            )

        if failed:
            raise partial(
                f"Deleted {len(deleted)} of {len(record_ids)} conflicting rules; "
                f"{pending.address} was not retried",
                retried=False,
            )

        if self._coordinator.pending is not pending:
            raise partial("The pending operation changed during resolution; it was not retried", retried=False)

        # (c) exactly one replay
        try:
            snapshot = await self._coordinator.replay_pending()
        except MutationRejected as e:
            raise partial(f"Conflicting rules removed but retrying {pending.address} failed: {e.message}", retried=True)

        report = ResolutionReport(
            outcome=ResolutionOutcome.SUCCEEDED,
            deleted_ids=deleted,
            skipped_addresses=skipped,
            retried=True,
        )
        if snapshot.status is MutationStatus.CONFLICT_PENDING:
            # Moving target: show the new set and wait for another confirmation
            logger.info(f"[{self._name}] retry of {pending.address} hit {len(snapshot.conflicts)} new conflict(s)")
            if deleted:
                self._on_cleanup()
            report = report.model_copy(update={"outcome": ResolutionOutcome.NEW_CONFLICTS})
        return report
