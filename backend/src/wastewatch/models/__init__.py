"""Domain models for WasteWatch."""

from .analytics import (
    AdminAnalytics,
    AnalyticsSummary,
    MonthlyTrend,
    StatusTotals,
    WorkerPerformance,
)
from .base import (
    CamelModel,
    GeoLocation,
    HealthRisk,
    Priority,
    ReportStatus,
    WasteType,
    Zone,
)
from .reports import (
    AssignRequest,
    BulkAssignRequest,
    ReportCreate,
    ReportUpdate,
    StatusEvent,
    WasteReport,
)
from .users import Permission, Role, User, UserAccount
from .workers import AssignmentCandidate, Worker, WorkerView

__all__ = [
    "AdminAnalytics",
    "AnalyticsSummary",
    "AssignRequest",
    "AssignmentCandidate",
    "BulkAssignRequest",
    "CamelModel",
    "GeoLocation",
    "HealthRisk",
    "MonthlyTrend",
    "Permission",
    "Priority",
    "ReportCreate",
    "ReportStatus",
    "ReportUpdate",
    "Role",
    "StatusEvent",
    "StatusTotals",
    "User",
    "UserAccount",
    "WasteReport",
    "WasteType",
    "Worker",
    "WorkerPerformance",
    "WorkerView",
    "Zone",
]
