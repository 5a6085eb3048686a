"""Read-only aggregate models recomputed from the report collection."""

from pydantic import Field

from .base import CamelModel
from .reports import WasteReport


class StatusTotals(CamelModel):
    total: int = 0
    pending: int = 0
    assigned: int = 0
    in_progress: int = 0
    resolved: int = 0


class MonthlyTrend(CamelModel):
    """Reports filed and resolved in one calendar month."""

    year: int
    month: int = Field(..., ge=1, le=12)
    label: str = Field(..., description="e.g. 'Jan 2024'")
    reports: int = 0
    resolved: int = 0


class AnalyticsSummary(CamelModel):
    """Dashboard overview."""

    totals: StatusTotals
    average_severity: float = 0.0
    high_priority: int = Field(default=0, description="Reports at or above the high-severity threshold")
    by_waste_type: dict[str, int] = Field(default_factory=dict)
    by_zone: dict[str, int] = Field(default_factory=dict)
    monthly_trends: list[MonthlyTrend] = Field(default_factory=list)
    average_resolution_hours: float | None = None


class WorkerPerformance(CamelModel):
    worker_id: str
    name: str
    zone: str
    total: int = 0
    active: int = 0
    completed: int = 0
    completion_rate: float = Field(default=0.0, description="Percent of assigned jobs resolved")


class AdminAnalytics(CamelModel):
    """Everything the admin dashboard shows in one payload."""

    summary: AnalyticsSummary
    workers: list[WorkerPerformance] = Field(default_factory=list)
    high_priority_queue: list[WasteReport] = Field(default_factory=list)
