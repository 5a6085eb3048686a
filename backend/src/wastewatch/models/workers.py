"""Field worker roster models."""

from pydantic import Field

from .base import CamelModel, Zone


class Worker(CamelModel):
    """A field worker on the roster.

    Active job counts are never stored here; see ``WorkerView``.
    """

    id: str
    name: str
    phone: str
    email: str
    zone: Zone


class WorkerView(Worker):
    """Roster entry with its workload derived from current reports."""

    active_jobs: int = Field(default=0, ge=0)


class AssignmentCandidate(CamelModel):
    """A worker eligible for a report, with the facts used to rank them."""

    worker: WorkerView
    same_zone: bool
    rank: int
