"""API endpoints for waste reports.

Provides submission, listing, lifecycle transitions, worker assignment
and deletion of reports.
"""

import json
from datetime import datetime
from uuid import uuid4

from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile
from pydantic import ValidationError as PydanticValidationError

from ..analytics import compute_analytics
from ..config import get_settings
from ..logging import get_logger
from ..models.base import ReportStatus
from ..models.reports import (
    AssignRequest,
    ReportCreate,
    ReportUpdate,
    StatusEvent,
    WasteReport,
    utcnow,
)
from ..models.users import Permission, User
from ..query import ReportQuery, filter_reports, sort_reports
from ..storage import ImageRejectedError, ImageStorage, get_image_storage
from ..store import Store, get_store
from ..workflow import ReportWorkflow, get_report_workflow
from . import (
    AuthorizationError,
    BadRequestError,
    ErrorDetail,
    NotFoundError,
    ValidationError,
    ok,
)
from .auth import CurrentUser, require_any_permission, require_permission
from .pagination import Page, PaginationParams

logger = get_logger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


def _validation_error(exc: PydanticValidationError) -> ValidationError:
    details = [
        ErrorDetail(
            code=str(error["type"]),
            message=str(error["msg"]),
            field=".".join(str(part) for part in error["loc"]) or None,
        )
        for error in exc.errors()
    ]
    return ValidationError(details[0].message if details else "Invalid request", details=details)


def get_report_query(
    status: str | None = Query(None, description="Status, or 'all'"),
    waste_type: str | None = Query(None, alias="wasteType", description="Waste type, or 'all'"),
    zone: str | None = Query(None, description="Zone, or 'all'"),
    severity: str | None = Query(None, description="Minimum severity, or 'all'"),
    search: str | None = Query(None, description="Search text over id and phone"),
    search_by: str = Query("any", alias="searchBy", pattern="^(any|id|phone)$"),
    assigned_agent_id: str | None = Query(None, alias="assignedAgentId"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
) -> ReportQuery:
    """Build a ReportQuery from query-string parameters."""
    try:
        return ReportQuery(
            status=status,
            waste_type=waste_type,
            zone=zone,
            severity=severity,
            search=search,
            search_by=search_by,
            assigned_worker_id=assigned_agent_id,
            created_from=start_date,
            created_to=end_date,
        )
    except PydanticValidationError as e:
        raise _validation_error(e)


def paginate_reports(reports: list[WasteReport], params: PaginationParams) -> dict:
    try:
        ordered = sort_reports(reports, params.sort)
    except ValueError as e:
        raise BadRequestError(str(e))
    return Page[WasteReport].create(ordered, params).to_api()


def can_view(user: User, report: WasteReport) -> bool:
    if user.can(Permission.VIEW_ALL_REPORTS):
        return True
    if report.citizen_id == user.id:
        return True
    return user.can(Permission.VIEW_ASSIGNED_REPORTS) and report.is_assigned_to(user.id)


# =============================================================================
# Listing
# =============================================================================


@router.get("")
async def list_reports(
    query: ReportQuery = Depends(get_report_query),
    pagination: PaginationParams = Depends(),
    user: User = Depends(
        require_any_permission(Permission.VIEW_ALL_REPORTS, Permission.VIEW_ASSIGNED_REPORTS)
    ),
    store: Store = Depends(get_store),
) -> dict:
    """List reports with filters. Workers only see reports assigned to them."""
    if not user.can(Permission.VIEW_ALL_REPORTS):
        query = query.model_copy(update={"assigned_worker_id": user.id})

    reports = filter_reports(await store.list_reports(), query)
    return ok(paginate_reports(reports, pagination))


@router.get("/my-reports")
async def my_reports(
    user: CurrentUser,
    pagination: PaginationParams = Depends(),
    store: Store = Depends(get_store),
) -> dict:
    """Reports filed by the authenticated account."""
    reports = [r for r in await store.list_reports() if r.citizen_id == user.id]
    return ok(paginate_reports(reports, pagination))


@router.get(
    "/stats/overview",
    dependencies=[Depends(require_permission(Permission.VIEW_ANALYTICS))],
)
async def stats_overview(store: Store = Depends(get_store)) -> dict:
    """Dashboard statistics across all reports."""
    settings = get_settings()
    summary = compute_analytics(
        await store.list_reports(),
        high_severity_threshold=settings.high_severity_threshold,
    )
    return ok(summary.to_api())


@router.get("/{report_id}")
async def get_report(
    report_id: str,
    user: CurrentUser,
    store: Store = Depends(get_store),
) -> dict:
    """Get a single report. Visible to its reporter, its worker and admins."""
    report = await store.get_report(report_id)
    if report is None:
        raise NotFoundError("Report", report_id)
    if not can_view(user, report):
        raise AuthorizationError("Access denied")
    return ok(report.to_api())


# =============================================================================
# Submission
# =============================================================================


@router.post("", status_code=201)
async def create_report(
    user: User = Depends(require_permission(Permission.SUBMIT_REPORT)),
    waste_type: str = Form(..., alias="wasteType"),
    severity: float = Form(...),
    location: str = Form(..., description="JSON-encoded {lat, lng, address}"),
    confidence: float = Form(0.5),
    zone: str | None = Form(None),
    description: str | None = Form(None),
    citizen_name: str | None = Form(None, alias="citizenName"),
    citizen_phone: str | None = Form(None, alias="citizenPhone"),
    image: UploadFile | None = File(None),
    store: Store = Depends(get_store),
    storage: ImageStorage = Depends(get_image_storage),
) -> dict:
    """Submit a report as multipart form data with a required photo."""
    if image is None:
        raise BadRequestError("Please upload an image")

    try:
        location_data = json.loads(location)
    except json.JSONDecodeError:
        raise ValidationError(
            "Location must be JSON",
            details=[ErrorDetail(code="json_invalid", message="Location must be JSON", field="location")],
        )

    try:
        payload = ReportCreate(
            waste_type=waste_type,
            severity=severity,
            confidence=confidence,
            location=location_data,
            zone=zone or None,
            description=description,
            citizen_name=citizen_name,
            citizen_phone=citizen_phone,
        )
    except PydanticValidationError as e:
        raise _validation_error(e)

    report_id = uuid4().hex
    content = await image.read()
    try:
        image_url, _ = await storage.save(report_id, content, image.content_type)
    except ImageRejectedError as e:
        raise BadRequestError(str(e))

    now = utcnow()
    report = WasteReport(
        id=report_id,
        citizen_id=user.id,
        citizen_name=payload.citizen_name or user.name,
        citizen_phone=payload.citizen_phone or user.phone,
        location=payload.location,
        zone=payload.zone,
        description=payload.description,
        image_url=image_url,
        waste_type=payload.waste_type,
        severity=payload.severity,
        confidence=payload.confidence,
        created_at=now,
        updated_at=now,
        history=[StatusEvent(to_status=ReportStatus.PENDING, actor_id=user.id, at=now)],
    )
    await store.add_report(report)

    logger.info(
        f"Report {report.id} submitted",
        extra={
            "report_id": report.id,
            "user_id": user.id,
            "waste_type": report.waste_type.value,
            "severity": report.severity,
            "event": "report_submitted",
        },
    )
    return ok(report.to_api(), message="Report submitted successfully")


# =============================================================================
# Lifecycle
# =============================================================================


@router.put("/{report_id}")
async def update_report(
    report_id: str,
    update: ReportUpdate,
    user: User = Depends(
        require_any_permission(
            Permission.ASSIGN_REPORT, Permission.START_JOB, Permission.COMPLETE_JOB
        )
    ),
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> dict:
    """Advance a report to its next status.

    Assigned needs ``assignedAgentId``; Resolved needs ``completionNotes``.
    """
    report = await workflow.update(report_id, user, update)
    return ok(report.to_api(), message="Report updated successfully")


@router.post("/{report_id}/assign")
async def assign_report(
    report_id: str,
    request: AssignRequest | None = Body(None),
    user: User = Depends(require_permission(Permission.ASSIGN_REPORT)),
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> dict:
    """Assign a pending report. Without ``workerId`` the best zone worker is chosen."""
    request = request or AssignRequest()
    report = await workflow.assign(
        report_id,
        user,
        worker_id=request.worker_id,
        allow_cross_zone=request.allow_cross_zone,
    )
    return ok(report.to_api(), message=f"Report assigned to {report.assigned_worker}")


@router.get(
    "/{report_id}/assignment-candidates",
    dependencies=[Depends(require_permission(Permission.ASSIGN_REPORT))],
)
async def assignment_candidates(
    report_id: str,
    cross_zone: bool | None = Query(None, alias="crossZone"),
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> dict:
    """Eligible workers for a report, best first."""
    candidates = await workflow.candidates(report_id, allow_cross_zone=cross_zone)
    return ok([candidate.to_api() for candidate in candidates])


@router.delete(
    "/{report_id}",
    dependencies=[Depends(require_permission(Permission.DELETE_REPORT))],
)
async def delete_report(
    report_id: str,
    store: Store = Depends(get_store),
    storage: ImageStorage = Depends(get_image_storage),
) -> dict:
    """Delete a report and its photo."""
    report = await store.get_report(report_id)
    if report is None or not await store.delete_report(report_id):
        raise NotFoundError("Report", report_id)
    await storage.delete(report.image_url)
    logger.info(f"Report {report_id} deleted", extra={"report_id": report_id, "event": "report_deleted"})
    return ok(message="Report deleted successfully")
