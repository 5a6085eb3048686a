"""Analytics recomputed from the report collection.

Nothing here is stored; every call aggregates the reports it is given.
"""

from collections import Counter, defaultdict
from collections.abc import Iterable

from .models.analytics import (
    AnalyticsSummary,
    MonthlyTrend,
    StatusTotals,
    WorkerPerformance,
)
from .models.base import ReportStatus, WasteType
from .models.reports import WasteReport
from .models.workers import Worker

UNZONED = "Unzoned"
MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def status_totals(reports: list[WasteReport]) -> StatusTotals:
    counts = Counter(report.status for report in reports)
    return StatusTotals(
        total=len(reports),
        pending=counts[ReportStatus.PENDING],
        assigned=counts[ReportStatus.ASSIGNED],
        in_progress=counts[ReportStatus.IN_PROGRESS],
        resolved=counts[ReportStatus.RESOLVED],
    )


def monthly_trends(reports: list[WasteReport], months: int = 12) -> list[MonthlyTrend]:
    """Filed and resolved counts per calendar month, oldest first.

    Only the most recent ``months`` months that have activity are returned.
    Resolutions count toward the month they happened in.
    """
    filed: Counter[tuple[int, int]] = Counter()
    resolved: Counter[tuple[int, int]] = Counter()
    for report in reports:
        filed[(report.created_at.year, report.created_at.month)] += 1
        if report.status == ReportStatus.RESOLVED:
            done = report.completed_at or report.updated_at
            resolved[(done.year, done.month)] += 1

    keys = sorted(set(filed) | set(resolved))[-months:]
    return [
        MonthlyTrend(
            year=year,
            month=month,
            label=f"{MONTH_LABELS[month - 1]} {year}",
            reports=filed[(year, month)],
            resolved=resolved[(year, month)],
        )
        for year, month in keys
    ]


def average_resolution_hours(reports: list[WasteReport]) -> float | None:
    """Mean hours from filing to completion over resolved reports."""
    durations = [
        (report.completed_at - report.created_at).total_seconds() / 3600
        for report in reports
        if report.status == ReportStatus.RESOLVED and report.completed_at is not None
    ]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 2)


def compute_analytics(
    reports: Iterable[WasteReport],
    high_severity_threshold: float = 8.0,
) -> AnalyticsSummary:
    """Build the dashboard summary for ``reports``."""
    reports = list(reports)

    by_type = {waste_type.value: 0 for waste_type in WasteType}
    by_zone: dict[str, int] = defaultdict(int)
    for report in reports:
        by_type[report.waste_type.value] += 1
        by_zone[report.zone.value if report.zone else UNZONED] += 1

    average = sum(r.severity for r in reports) / len(reports) if reports else 0.0

    return AnalyticsSummary(
        totals=status_totals(reports),
        average_severity=round(average, 2),
        high_priority=sum(1 for r in reports if r.severity >= high_severity_threshold),
        by_waste_type=by_type,
        by_zone=dict(by_zone),
        monthly_trends=monthly_trends(reports),
        average_resolution_hours=average_resolution_hours(reports),
    )


def worker_performance(
    workers: Iterable[Worker], reports: Iterable[WasteReport]
) -> list[WorkerPerformance]:
    """Per-worker job counts and completion rate."""
    reports = list(reports)
    results = []
    for worker in workers:
        jobs = [r for r in reports if r.assigned_worker_id == worker.id]
        completed = sum(1 for r in jobs if r.status == ReportStatus.RESOLVED)
        results.append(
            WorkerPerformance(
                worker_id=worker.id,
                name=worker.name,
                zone=worker.zone.value,
                total=len(jobs),
                active=len(jobs) - completed,
                completed=completed,
                completion_rate=round(completed / len(jobs) * 100, 1) if jobs else 0.0,
            )
        )
    return results


def high_priority_queue(
    reports: Iterable[WasteReport],
    threshold: float = 8.0,
    limit: int | None = None,
) -> list[WasteReport]:
    """Unresolved reports at or above ``threshold``, most severe first.

    Equal severities keep oldest-first order.
    """
    queue = sorted(
        (r for r in reports if r.status != ReportStatus.RESOLVED and r.severity >= threshold),
        key=lambda r: (-r.severity, r.created_at),
    )
    return queue[:limit] if limit is not None else queue
