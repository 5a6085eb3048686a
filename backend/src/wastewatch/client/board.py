"""Report board: client-side view-model of a report list.

The board holds the reports the server last confirmed and a ReportQuery
describing what the user wants to see. Mutations follow confirm-then-apply:
the displayed report only changes once the server returns the updated
version, so a failed request leaves the board exactly as it was and sets
``error`` instead.

Each (report id, action) pair has its own busy flag. A second request for a
pair that is still in flight is refused without touching the network.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from ..logging import get_context_logger
from ..models.reports import WasteReport
from ..query import ReportQuery, filter_reports
from ..workflow import Action, allowed_actions
from .api import ServerError, TransportError, WasteApiClient, extract_docs

logger = get_context_logger(__name__, component="board")

NETWORK_ERROR = "Network error. Please check your connection and try again."

# Largest page GET /api/reports will serve
MAX_PAGE_SIZE = 100


class ReportBoard:
    """Displayed reports plus filter, busy and error state.

    Args:
        client: API client used for loads and mutations
        query: Initial filter state
        page_size: Reports requested per page; ``refresh`` walks every page
            and the size is capped at ``MAX_PAGE_SIZE``
    """

    def __init__(
        self,
        client: WasteApiClient,
        query: ReportQuery | None = None,
        page_size: int = 100,
    ):
        self.client = client
        self.query = query or ReportQuery()
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self.reports: list[WasteReport] = []
        self.error: str | None = None
        self.busy: set[tuple[str, Action]] = set()
        self.loading = False
        self._tasks: set[asyncio.Task] = set()
        self._disposed = False

    # =========================
    # View state
    # =========================

    @property
    def visible(self) -> list[WasteReport]:
        """Reports matching the current query, in server order."""
        return filter_reports(self.reports, self.query)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def get(self, report_id: str) -> WasteReport | None:
        for report in self.reports:
            if report.id == report_id:
                return report
        return None

    def is_busy(self, report_id: str, action: Action) -> bool:
        return (report_id, action) in self.busy

    def set_filter(self, **changes: Any) -> ReportQuery:
        """Change one or more predicates. Unknown values raise ValidationError."""
        self.query = ReportQuery(**{**self.query.model_dump(), **changes})
        return self.query

    def set_search(self, text: str | None) -> None:
        """None clears the search; an empty string searches for nothing."""
        self.set_filter(search=text)

    def clear_filters(self) -> None:
        self.query = ReportQuery()

    # =========================
    # Network
    # =========================

    async def _run(self, call: Awaitable[Any]) -> Any:
        task = asyncio.ensure_future(call)
        self._tasks.add(task)
        try:
            return await task
        finally:
            self._tasks.discard(task)

    async def _load_all(self) -> list[dict]:
        docs: list[dict] = []
        page = 1
        while True:
            data = await self.client.list_reports(page=page, limit=self.page_size)
            docs.extend(extract_docs(data))
            if not (isinstance(data, dict) and data.get("hasNextPage")):
                return docs
            page += 1

    async def refresh(self) -> list[WasteReport]:
        """Reload every page of the report list from the server.

        The list is replaced only once all pages have arrived.
        """
        if self._disposed:
            return self.reports
        self.loading = True
        try:
            docs = await self._run(self._load_all())
        except ServerError as e:
            self.error = e.message
            return self.reports
        except TransportError:
            self.error = NETWORK_ERROR
            return self.reports
        except asyncio.CancelledError:
            if self._disposed:
                return self.reports
            raise
        finally:
            self.loading = False

        if not self._disposed:
            self.reports = [WasteReport.model_validate(doc) for doc in docs]
            self.error = None
        return self.reports

    async def _mutate(
        self,
        report_id: str,
        action: Action,
        call: Callable[[], Awaitable[dict]],
    ) -> WasteReport | None:
        if self._disposed:
            return None

        key = (report_id, action)
        if key in self.busy:
            logger.debug(f"Ignoring duplicate {action.value} for report {report_id}")
            return None

        current = self.get(report_id)
        if current is not None and action not in allowed_actions(current.status):
            self.error = f"Cannot {action.value} a report that is {current.status.value}"
            return None

        self.busy.add(key)
        self.error = None
        try:
            data = await self._run(call())
        except ServerError as e:
            self.error = e.message
            return None
        except TransportError:
            self.error = NETWORK_ERROR
            return None
        except asyncio.CancelledError:
            if self._disposed:
                return None
            raise
        finally:
            self.busy.discard(key)

        if self._disposed:
            return None

        updated = WasteReport.model_validate(data)
        self.reports = [updated if r.id == updated.id else r for r in self.reports]
        return updated

    async def assign(self, report_id: str, worker_id: str | None = None) -> WasteReport | None:
        return await self._mutate(
            report_id,
            Action.ASSIGN,
            lambda: self.client.assign_report(report_id, worker_id=worker_id),
        )

    async def start(self, report_id: str) -> WasteReport | None:
        return await self._mutate(
            report_id, Action.START, lambda: self.client.start_job(report_id)
        )

    async def complete(self, report_id: str, completion_notes: str | None) -> WasteReport | None:
        """Resolve a job. Empty notes are rejected before any request."""
        if not completion_notes or not completion_notes.strip():
            self.error = "Please add completion notes"
            return None
        notes = completion_notes.strip()
        return await self._mutate(
            report_id,
            Action.COMPLETE,
            lambda: self.client.complete_job(report_id, notes),
        )

    def dispose(self) -> None:
        """Cancel in-flight requests; their results are dropped."""
        self._disposed = True
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self.busy.clear()
