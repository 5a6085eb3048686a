"""Pydantic models for waste reports.

A report is created Pending and moves forward one step at a time through
Assigned and In Progress to Resolved. Severity drives a set of derived
classifications (level, priority, urgency, health risk) that are computed on
every read and never stored.
"""

from datetime import datetime, timedelta, timezone

from pydantic import Field, computed_field, field_validator

from .base import (
    CamelModel,
    GeoLocation,
    HealthRisk,
    Priority,
    ReportStatus,
    WasteType,
    Zone,
)

# Hours the city commits to for each priority, counted from assignment
PRIORITY_RESPONSE_HOURS: dict[Priority, int] = {
    Priority.CRITICAL: 2,
    Priority.HIGH: 6,
    Priority.MEDIUM: 24,
    Priority.LOW: 48,
}

# (minimum severity, severity level, priority), checked top-down
SEVERITY_BANDS: list[tuple[float, str, Priority]] = [
    (9.0, "Critical", Priority.CRITICAL),
    (7.0, "Very High", Priority.HIGH),
    (5.0, "High", Priority.MEDIUM),
    (3.0, "Medium", Priority.MEDIUM),
    (0.0, "Low", Priority.LOW),
]


def classify_severity(severity: float) -> tuple[str, Priority]:
    """Map a 0-10 severity score to its (severity level, priority) band."""
    for minimum, level, priority in SEVERITY_BANDS:
        if severity >= minimum:
            return level, priority
    return "Low", Priority.LOW


def assess_health_risk(waste_type: WasteType, severity: float) -> HealthRisk:
    """Public health risk for a waste type at a given severity."""
    if waste_type == WasteType.MEDICAL:
        return HealthRisk.CRITICAL if severity >= 7 else HealthRisk.HIGH
    if waste_type == WasteType.E_WASTE and severity >= 6:
        return HealthRisk.MEDIUM
    return HealthRisk.NONE


def estimate_completion(assigned_at: datetime, priority: Priority) -> datetime:
    """Deadline for a job assigned at ``assigned_at``."""
    return assigned_at + timedelta(hours=PRIORITY_RESPONSE_HOURS[priority])


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusEvent(CamelModel):
    """One entry of a report's append-only status history."""

    from_status: ReportStatus | None = None
    to_status: ReportStatus
    actor_id: str | None = None
    at: datetime
    notes: str | None = None


class WasteReport(CamelModel):
    """A citizen-submitted waste incident."""

    id: str
    citizen_id: str | None = Field(default=None, description="Account that filed the report")
    citizen_name: str = Field(..., min_length=1, max_length=100)
    citizen_phone: str = Field(..., min_length=1, max_length=30)
    location: GeoLocation
    zone: Zone | None = None
    description: str | None = Field(default=None, max_length=500)
    image_url: str | None = None

    # Classification
    waste_type: WasteType
    severity: float = Field(..., ge=0, le=10)
    confidence: float = Field(default=0.5, ge=0, le=1)

    # Workflow
    status: ReportStatus = ReportStatus.PENDING
    assigned_worker: str | None = Field(default=None, description="Assigned worker's name")
    assigned_worker_id: str | None = None
    assigned_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    estimated_completion_at: datetime | None = None
    actual_completion_minutes: int | None = None
    completion_notes: str | None = Field(default=None, max_length=500)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    history: list[StatusEvent] = Field(default_factory=list)

    @computed_field
    @property
    def severity_level(self) -> str:
        return classify_severity(self.severity)[0]

    @computed_field
    @property
    def priority(self) -> Priority:
        return classify_severity(self.severity)[1]

    @computed_field
    @property
    def is_urgent(self) -> bool:
        return self.severity >= 9 or self.waste_type == WasteType.MEDICAL

    @computed_field
    @property
    def public_health_risk(self) -> HealthRisk:
        return assess_health_risk(self.waste_type, self.severity)

    @property
    def address(self) -> str:
        return self.location.address or ""

    def is_assigned_to(self, worker_id: str) -> bool:
        return self.assigned_worker_id is not None and self.assigned_worker_id == worker_id


class ReportCreate(CamelModel):
    """Fields a citizen supplies when filing a report.

    The reporter identity falls back to the authenticated account when
    ``citizen_name``/``citizen_phone`` are not given.
    """

    citizen_name: str | None = Field(default=None, max_length=100)
    citizen_phone: str | None = Field(default=None, max_length=30)
    location: GeoLocation
    zone: Zone | None = None
    description: str | None = Field(default=None, max_length=500)
    waste_type: WasteType
    severity: float = Field(..., ge=0, le=10)
    confidence: float = Field(default=0.5, ge=0, le=1)

    @field_validator("description")
    @classmethod
    def strip_description(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class ReportUpdate(CamelModel):
    """Partial update accepted by ``PUT /api/reports/{id}``."""

    status: ReportStatus | None = None
    completion_notes: str | None = Field(default=None, max_length=500)
    assigned_agent_id: str | None = None


class AssignRequest(CamelModel):
    """Body of ``POST /api/reports/{id}/assign``; no worker means auto-dispatch."""

    worker_id: str | None = None
    allow_cross_zone: bool | None = None


class BulkAssignRequest(CamelModel):
    """Assign several pending reports to one worker."""

    report_ids: list[str] = Field(..., min_length=1)
    agent_id: str

