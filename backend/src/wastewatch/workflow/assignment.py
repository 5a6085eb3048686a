"""Assignment resolver: pick the worker for a pending report.

Matching is by zone name only; there is no distance computation. Among
workers in the report's zone, those at capacity are skipped and the rest
are ranked by current workload.
"""

from ..logging import get_context_logger
from ..models.reports import WasteReport
from ..models.workers import AssignmentCandidate, WorkerView
from .lifecycle import UnknownWorkerError, WorkflowError

logger = get_context_logger(__name__, component="dispatch")


class NoAvailableWorkerError(WorkflowError):
    """No eligible worker exists for the report."""

    def __init__(self, report_id: str, zone: str | None):
        self.report_id = report_id
        self.zone = zone
        where = f"zone '{zone}'" if zone else "an unzoned report"
        super().__init__(f"No available worker for {where} (report {report_id})")


class AssignmentResolver:
    """Ranks roster workers for a report.

    Args:
        max_active_jobs: Workers with this many Assigned/In Progress jobs are
            not auto-assigned more
        allow_cross_zone: Fall back to the whole roster when the report's zone
            has no eligible worker
    """

    def __init__(self, max_active_jobs: int = 5, allow_cross_zone: bool = False):
        self.max_active_jobs = max_active_jobs
        self.allow_cross_zone = allow_cross_zone

    def rank(
        self,
        report: WasteReport,
        workers: list[WorkerView],
        allow_cross_zone: bool | None = None,
    ) -> list[AssignmentCandidate]:
        """Eligible workers for ``report``, best first.

        Ties are broken by lowest active job count, then name, then id, so
        the same roster always yields the same order.
        """
        cross_zone = self.allow_cross_zone if allow_cross_zone is None else allow_cross_zone
        eligible = [w for w in workers if w.active_jobs < self.max_active_jobs]

        same_zone = [w for w in eligible if report.zone is not None and w.zone == report.zone]
        if same_zone:
            pool = same_zone
        elif cross_zone:
            pool = eligible
        else:
            pool = []

        ordered = sorted(pool, key=lambda w: (w.active_jobs, w.name, w.id))
        return [
            AssignmentCandidate(
                worker=worker,
                same_zone=report.zone is not None and worker.zone == report.zone,
                rank=position,
            )
            for position, worker in enumerate(ordered, start=1)
        ]

    def resolve(
        self,
        report: WasteReport,
        workers: list[WorkerView],
        worker_id: str | None = None,
        allow_cross_zone: bool | None = None,
    ) -> tuple[WorkerView, int]:
        """Choose the worker for ``report``.

        A given ``worker_id`` is a manual choice and only has to exist on the
        roster. Without one the top-ranked candidate wins.

        Returns:
            Tuple of (chosen worker, number of candidates considered)

        Raises:
            UnknownWorkerError: If ``worker_id`` is not on the roster
            NoAvailableWorkerError: If auto-selection finds nobody
        """
        if worker_id is not None:
            for worker in workers:
                if worker.id == worker_id:
                    return worker, 1
            raise UnknownWorkerError(worker_id)

        candidates = self.rank(report, workers, allow_cross_zone=allow_cross_zone)
        if not candidates:
            zone = report.zone.value if report.zone else None
            logger.info(
                f"No candidates for report {report.id}",
                extra={"report_id": report.id, "zone": zone, "roster_size": len(workers)},
            )
            raise NoAvailableWorkerError(report.id, zone)

        return candidates[0].worker, len(candidates)
