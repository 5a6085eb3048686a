"""Administrative endpoints: analytics, bulk assignment, exports and audit."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Response

from ..analytics import compute_analytics, high_priority_queue, worker_performance
from ..config import get_settings
from ..export import MEDIA_TYPES, export_reports
from ..logging import log_export
from ..models.analytics import AdminAnalytics
from ..models.reports import BulkAssignRequest
from ..models.users import Permission, User
from ..query import ReportQuery, filter_reports
from ..store import Store, get_store
from ..workflow import ReportWorkflow, get_report_workflow
from . import ok
from .auth import require_permission
from .reports import get_report_query

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/analytics",
    dependencies=[Depends(require_permission(Permission.VIEW_ANALYTICS))],
)
async def analytics(
    queue_limit: int = Query(10, ge=1, le=100, alias="queueLimit"),
    store: Store = Depends(get_store),
) -> dict:
    """Summary, per-worker performance and the high-priority queue."""
    settings = get_settings()
    reports = await store.list_reports()
    workers = await store.list_workers()
    payload = AdminAnalytics(
        summary=compute_analytics(reports, high_severity_threshold=settings.high_severity_threshold),
        workers=worker_performance(workers, reports),
        high_priority_queue=high_priority_queue(
            reports, threshold=settings.high_severity_threshold, limit=queue_limit
        ),
    )
    return ok(payload.to_api())


@router.post("/bulk-assign")
async def bulk_assign(
    request: BulkAssignRequest,
    user: User = Depends(require_permission(Permission.ASSIGN_REPORT)),
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> dict:
    """Assign several reports to one worker. Only Pending reports are touched."""
    assigned = await workflow.bulk_assign(request.report_ids, user, request.agent_id)
    return ok(
        {"modifiedCount": len(assigned), "reportIds": [r.id for r in assigned]},
        message=f"{len(assigned)} reports assigned successfully",
    )


@router.get("/export/reports")
async def export(
    format: str = Query("csv", pattern="^(csv|html|json)$"),
    query: ReportQuery = Depends(get_report_query),
    user: User = Depends(require_permission(Permission.EXPORT_REPORTS)),
    store: Store = Depends(get_store),
) -> Response:
    """Download the filtered report list as CSV, HTML or JSON."""
    reports = filter_reports(await store.list_reports(), query)
    content = export_reports(reports, format=format)
    log_export(format, len(reports), user_id=user.id)

    filename = f"waste-reports-{datetime.now(timezone.utc):%Y-%m-%d}.{format}"
    return Response(
        content=content,
        media_type=MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/audit",
    dependencies=[Depends(require_permission(Permission.VIEW_ANALYTICS))],
)
async def audit_log(
    limit: int = Query(100, ge=1, le=1000),
    store: Store = Depends(get_store),
) -> dict:
    """Most recent audited requests."""
    return ok(await store.audit_entries(limit=limit))
