"""Report lifecycle: states, transitions and the commands that drive them.

States only move forward, one step at a time:

    Pending --assign--> Assigned --start--> In Progress --complete--> Resolved

Commands are pure. ``apply`` takes the current report and returns the next
version without touching storage; persisting it is the workflow service's job.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..models.base import ReportStatus
from ..models.reports import StatusEvent, WasteReport, estimate_completion
from ..models.users import Permission, User
from ..models.workers import Worker

STATUS_ORDER: list[ReportStatus] = [
    ReportStatus.PENDING,
    ReportStatus.ASSIGNED,
    ReportStatus.IN_PROGRESS,
    ReportStatus.RESOLVED,
]


class Action(str, Enum):
    """Actions that advance a report."""

    ASSIGN = "assign"
    START = "start"
    COMPLETE = "complete"


# current status -> (action, next status)
TRANSITIONS: dict[ReportStatus, tuple[Action, ReportStatus]] = {
    ReportStatus.PENDING: (Action.ASSIGN, ReportStatus.ASSIGNED),
    ReportStatus.ASSIGNED: (Action.START, ReportStatus.IN_PROGRESS),
    ReportStatus.IN_PROGRESS: (Action.COMPLETE, ReportStatus.RESOLVED),
}

ACTION_PERMISSIONS: dict[Action, Permission] = {
    Action.ASSIGN: Permission.ASSIGN_REPORT,
    Action.START: Permission.START_JOB,
    Action.COMPLETE: Permission.COMPLETE_JOB,
}

# Actions only the worker holding the job may perform
WORKER_OWNED_ACTIONS = frozenset({Action.START, Action.COMPLETE})


# =============================================================================
# Errors
# =============================================================================


class WorkflowError(ValueError):
    """Base class for lifecycle failures."""


class ReportNotFoundError(WorkflowError):
    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report not found: {report_id}")


class InvalidTransitionError(WorkflowError):
    """Requested status is not the single next step from the current one."""

    def __init__(self, current: ReportStatus, requested: ReportStatus):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move report from '{current.value}' to '{requested.value}'"
        )


class TransitionPayloadError(WorkflowError):
    """A transition was requested without the data it needs."""


class UnknownWorkerError(TransitionPayloadError):
    def __init__(self, worker_id: str):
        self.worker_id = worker_id
        super().__init__(f"Invalid worker: {worker_id}")


class NotPermittedError(WorkflowError):
    """The acting user may not perform this action on this report."""


class ConcurrentUpdateError(WorkflowError):
    """The report changed between read and write."""

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report {report_id} was updated by another request")


# =============================================================================
# Transition table helpers
# =============================================================================


def next_transition(status: ReportStatus) -> tuple[Action, ReportStatus] | None:
    """The single forward step from ``status``, or None when terminal."""
    return TRANSITIONS.get(status)


def allowed_actions(status: ReportStatus) -> list[Action]:
    step = next_transition(status)
    return [step[0]] if step else []


def action_for(current: ReportStatus, requested: ReportStatus) -> Action:
    """Resolve a requested target status into the action that reaches it.

    Raises:
        InvalidTransitionError: For skips, backward moves, no-ops and
            anything out of Resolved
    """
    step = next_transition(current)
    if step is None or step[1] != requested:
        raise InvalidTransitionError(current, requested)
    return step[0]


def authorize(action: Action, actor: User, report: WasteReport) -> None:
    """Check that ``actor`` may perform ``action`` on ``report``.

    Raises:
        NotPermittedError: If the role lacks the permission, or a worker acts
            on a job that is not theirs
    """
    permission = ACTION_PERMISSIONS[action]
    if not actor.can(permission):
        raise NotPermittedError(f"Role '{actor.role.value}' may not {action.value} reports")
    if action in WORKER_OWNED_ACTIONS and not report.is_assigned_to(actor.id):
        raise NotPermittedError("You can only update reports assigned to you")


def authorize_update(actor: User, report: WasteReport) -> None:
    """Check that ``actor`` may change ``report`` before its status is examined.

    Dispatchers may touch any report; everyone else only the jobs they hold.
    """
    if not actor.can(Permission.ASSIGN_REPORT) and not report.is_assigned_to(actor.id):
        raise NotPermittedError("You can only update reports assigned to you")


def can_perform(action: Action, actor: User, report: WasteReport) -> bool:
    """Whether ``actor`` could perform ``action`` on ``report`` right now."""
    if action not in allowed_actions(report.status):
        return False
    try:
        authorize(action, actor, report)
    except NotPermittedError:
        return False
    return True


# =============================================================================
# Commands
# =============================================================================


class LifecycleCommand:
    """One forward step of the lifecycle."""

    action: Action

    @property
    def source(self) -> ReportStatus:
        for status, (action, _) in TRANSITIONS.items():
            if action == self.action:
                return status
        raise KeyError(self.action)

    @property
    def target(self) -> ReportStatus:
        return TRANSITIONS[self.source][1]

    def validate(self) -> None:
        """Check the command's own payload. Raises TransitionPayloadError."""

    def changes(self, report: WasteReport, now: datetime) -> dict:
        return {}

    def notes(self) -> str | None:
        return None

    def apply(self, report: WasteReport, actor_id: str | None, now: datetime) -> WasteReport:
        """Return the next version of ``report``.

        Raises:
            InvalidTransitionError: If ``report`` is not in this command's
                source state
            TransitionPayloadError: If the payload is incomplete
        """
        if report.status != self.source:
            raise InvalidTransitionError(report.status, self.target)
        self.validate()

        event = StatusEvent(
            from_status=report.status,
            to_status=self.target,
            actor_id=actor_id,
            at=now,
            notes=self.notes(),
        )
        updates = {
            **self.changes(report, now),
            "status": self.target,
            "updated_at": now,
            "history": [*report.history, event],
        }
        return report.model_copy(update=updates)


@dataclass(frozen=True)
class AssignWorker(LifecycleCommand):
    worker: Worker
    action = Action.ASSIGN

    def changes(self, report: WasteReport, now: datetime) -> dict:
        return {
            "assigned_worker": self.worker.name,
            "assigned_worker_id": self.worker.id,
            "assigned_at": now,
            "estimated_completion_at": estimate_completion(now, report.priority),
        }

    def notes(self) -> str | None:
        return f"Assigned to {self.worker.name}"


@dataclass(frozen=True)
class StartJob(LifecycleCommand):
    action = Action.START

    def changes(self, report: WasteReport, now: datetime) -> dict:
        return {"started_at": now}


@dataclass(frozen=True)
class CompleteJob(LifecycleCommand):
    completion_notes: str | None
    action = Action.COMPLETE

    def validate(self) -> None:
        if not self.completion_notes or not self.completion_notes.strip():
            raise TransitionPayloadError("Completion notes are required to resolve a report")
        if len(self.completion_notes.strip()) > 500:
            raise TransitionPayloadError("Completion notes cannot exceed 500 characters")

    def changes(self, report: WasteReport, now: datetime) -> dict:
        started = report.started_at or report.assigned_at or report.created_at
        minutes = max(0, round((now - started).total_seconds() / 60))
        return {
            "completed_at": now,
            "completion_notes": self.completion_notes.strip(),
            "actual_completion_minutes": minutes,
        }

    def notes(self) -> str | None:
        return self.completion_notes.strip() if self.completion_notes else None
