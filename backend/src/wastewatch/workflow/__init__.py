"""Report lifecycle, worker assignment and the service that runs them."""

from .assignment import AssignmentResolver, NoAvailableWorkerError
from .lifecycle import (
    Action,
    AssignWorker,
    CompleteJob,
    ConcurrentUpdateError,
    InvalidTransitionError,
    NotPermittedError,
    ReportNotFoundError,
    StartJob,
    TransitionPayloadError,
    UnknownWorkerError,
    WorkflowError,
    allowed_actions,
    can_perform,
)
from .service import ReportWorkflow, get_report_workflow

__all__ = [
    "Action",
    "AssignWorker",
    "AssignmentResolver",
    "CompleteJob",
    "ConcurrentUpdateError",
    "InvalidTransitionError",
    "NoAvailableWorkerError",
    "NotPermittedError",
    "ReportNotFoundError",
    "ReportWorkflow",
    "StartJob",
    "TransitionPayloadError",
    "UnknownWorkerError",
    "WorkflowError",
    "allowed_actions",
    "can_perform",
    "get_report_workflow",
]
