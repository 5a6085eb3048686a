"""Workflow service: runs lifecycle commands against the store.

Every transition follows the same path: load the report, check the actor,
apply the pure command, then compare-and-swap on the status that was read.
If the swap loses, the caller gets ConcurrentUpdateError and nothing changed.
"""

from collections.abc import Callable
from datetime import datetime

from ..config import get_settings
from ..logging import get_logger, log_assignment, log_status_transition
from ..models.base import ReportStatus
from ..models.reports import ReportUpdate, WasteReport, utcnow
from ..models.users import User
from ..models.workers import AssignmentCandidate
from ..store import Store, get_store
from .assignment import AssignmentResolver
from .lifecycle import (
    Action,
    AssignWorker,
    CompleteJob,
    ConcurrentUpdateError,
    LifecycleCommand,
    ReportNotFoundError,
    StartJob,
    TransitionPayloadError,
    action_for,
    authorize,
    authorize_update,
)

logger = get_logger(__name__)


class ReportWorkflow:
    """Executes report transitions.

    Args:
        store: Backing store (defaults to the process-wide store)
        resolver: Worker selection policy
        clock: Source of "now", injectable for tests
    """

    def __init__(
        self,
        store: Store | None = None,
        resolver: AssignmentResolver | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if resolver is None:
            settings = get_settings()
            resolver = AssignmentResolver(
                max_active_jobs=settings.max_active_jobs,
                allow_cross_zone=settings.allow_cross_zone,
            )
        self._store = store
        self.resolver = resolver
        self._clock = clock

    @property
    def store(self) -> Store:
        return self._store if self._store is not None else get_store()

    async def _load(self, report_id: str) -> WasteReport:
        report = await self.store.get_report(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    async def _execute(
        self, report: WasteReport, actor: User, command: LifecycleCommand
    ) -> WasteReport:
        authorize(command.action, actor, report)
        updated = command.apply(report, actor.id, self._clock())

        if not await self.store.compare_and_swap(updated, expected_status=report.status):
            raise ConcurrentUpdateError(report.id)

        log_status_transition(report.id, report.status.value, updated.status.value, actor.id)
        return updated

    # =========================
    # Transitions
    # =========================

    async def assign(
        self,
        report_id: str,
        actor: User,
        worker_id: str | None = None,
        allow_cross_zone: bool | None = None,
    ) -> WasteReport:
        """Assign a pending report, to ``worker_id`` or to the best candidate."""
        report = await self._load(report_id)
        authorize(Action.ASSIGN, actor, report)
        action_for(report.status, ReportStatus.ASSIGNED)

        workers = await self.store.list_workers()
        worker, considered = self.resolver.resolve(
            report, workers, worker_id=worker_id, allow_cross_zone=allow_cross_zone
        )
        updated = await self._execute(report, actor, AssignWorker(worker=worker))

        log_assignment(
            report.id,
            worker.id,
            strategy="manual" if worker_id else "auto",
            candidates=considered,
        )
        return updated

    async def start(self, report_id: str, actor: User) -> WasteReport:
        report = await self._load(report_id)
        return await self._execute(report, actor, StartJob())

    async def complete(
        self, report_id: str, actor: User, completion_notes: str | None
    ) -> WasteReport:
        report = await self._load(report_id)
        return await self._execute(report, actor, CompleteJob(completion_notes=completion_notes))

    async def update(self, report_id: str, actor: User, update: ReportUpdate) -> WasteReport:
        """Apply a partial update by translating the requested status into an action.

        Raises:
            NotPermittedError: If the actor may not change this report
            InvalidTransitionError: If the status is not the next step
            TransitionPayloadError: If the update requests nothing
        """
        if update.status is None:
            if update.assigned_agent_id:
                return await self.assign(report_id, actor, worker_id=update.assigned_agent_id)
            raise TransitionPayloadError("No status change requested")

        report = await self._load(report_id)
        authorize_update(actor, report)
        action = action_for(report.status, update.status)
        authorize(action, actor, report)

        if action == Action.ASSIGN:
            if not update.assigned_agent_id:
                raise TransitionPayloadError("A worker is required to assign a report")
            return await self.assign(report_id, actor, worker_id=update.assigned_agent_id)
        if action == Action.START:
            return await self._execute(report, actor, StartJob())
        return await self._execute(
            report, actor, CompleteJob(completion_notes=update.completion_notes)
        )

    # =========================
    # Queries
    # =========================

    async def candidates(
        self, report_id: str, allow_cross_zone: bool | None = None
    ) -> list[AssignmentCandidate]:
        report = await self._load(report_id)
        workers = await self.store.list_workers()
        return self.resolver.rank(report, workers, allow_cross_zone=allow_cross_zone)

    async def bulk_assign(
        self, report_ids: list[str], actor: User, worker_id: str
    ) -> list[WasteReport]:
        """Assign every still-pending report in ``report_ids`` to one worker.

        Reports that are missing or no longer Pending are skipped.
        """
        assigned: list[WasteReport] = []
        for report_id in report_ids:
            report = await self.store.get_report(report_id)
            if report is None or report.status != ReportStatus.PENDING:
                continue
            try:
                assigned.append(await self.assign(report_id, actor, worker_id=worker_id))
            except ConcurrentUpdateError:
                logger.info(f"Skipped report {report_id}: assigned concurrently")
        return assigned


# Global workflow instance
_workflow: ReportWorkflow | None = None


def get_report_workflow() -> ReportWorkflow:
    """Get or create the report workflow."""
    global _workflow
    if _workflow is None:
        _workflow = ReportWorkflow()
    return _workflow
