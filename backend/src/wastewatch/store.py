"""In-process data store for WasteWatch.

Holds reports, accounts, the worker roster, revoked token ids and the audit
trail. Every mutation runs under one asyncio lock; report status changes go
through ``compare_and_swap`` so two concurrent transitions of the same report
cannot both succeed.
"""

import asyncio
from collections import deque
from datetime import datetime, timezone
from typing import Any

from .logging import get_logger
from .models.base import ReportStatus
from .models.reports import WasteReport
from .models.users import UserAccount
from .models.workers import Worker, WorkerView

logger = get_logger(__name__)

ACTIVE_STATUSES = frozenset({ReportStatus.ASSIGNED, ReportStatus.IN_PROGRESS})

# Audit entries kept in memory; older ones are dropped
AUDIT_LOG_SIZE = 1000


class DuplicateAccountError(ValueError):
    """An account with the same email or phone already exists."""


class Store:
    """Async in-memory repository.

    Reports keep insertion order, so listings come back in the order
    reports were filed unless a caller sorts them.
    """

    def __init__(self, audit_log_size: int = AUDIT_LOG_SIZE):
        self._reports: dict[str, WasteReport] = {}
        self._users: dict[str, UserAccount] = {}
        self._workers: dict[str, Worker] = {}
        self._revoked_tokens: dict[str, datetime] = {}
        self._audit: deque[dict[str, Any]] = deque(maxlen=audit_log_size)
        self._lock = asyncio.Lock()

    # =========================
    # Reports
    # =========================

    async def add_report(self, report: WasteReport) -> WasteReport:
        async with self._lock:
            if report.id in self._reports:
                raise ValueError(f"Report {report.id} already exists")
            self._reports[report.id] = report
        return report

    async def get_report(self, report_id: str) -> WasteReport | None:
        return self._reports.get(report_id)

    async def list_reports(self) -> list[WasteReport]:
        return list(self._reports.values())

    async def compare_and_swap(
        self, report: WasteReport, expected_status: ReportStatus
    ) -> bool:
        """Replace a stored report only if its status is still ``expected_status``.

        Returns:
            True if the write happened, False if the report is gone or was
            moved on by someone else.
        """
        async with self._lock:
            current = self._reports.get(report.id)
            if current is None or current.status != expected_status:
                return False
            self._reports[report.id] = report
            return True

    async def delete_report(self, report_id: str) -> bool:
        async with self._lock:
            return self._reports.pop(report_id, None) is not None

    # =========================
    # Accounts
    # =========================

    async def add_user(self, account: UserAccount) -> UserAccount:
        """Store a new account.

        Raises:
            DuplicateAccountError: If the email or phone is already registered
        """
        async with self._lock:
            for existing in self._users.values():
                if existing.email == account.email or existing.phone == account.phone:
                    raise DuplicateAccountError(
                        "User with this email or phone already exists"
                    )
            self._users[account.id] = account
        return account

    async def update_user(self, account: UserAccount) -> UserAccount:
        """Replace a stored account; a worker's roster entry follows its name and phone.

        Raises:
            DuplicateAccountError: If another account already uses the phone
        """
        async with self._lock:
            for existing in self._users.values():
                if existing.id != account.id and existing.phone == account.phone:
                    raise DuplicateAccountError("User with this phone already exists")
            self._users[account.id] = account
            worker = self._workers.get(account.id)
            if worker is not None:
                self._workers[account.id] = worker.model_copy(
                    update={"name": account.name, "phone": account.phone}
                )
        return account

    async def get_user(self, user_id: str) -> UserAccount | None:
        return self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> UserAccount | None:
        email = email.strip().lower()
        for account in self._users.values():
            if account.email == email:
                return account
        return None

    # =========================
    # Worker roster
    # =========================

    async def add_worker(self, worker: Worker) -> Worker:
        async with self._lock:
            self._workers[worker.id] = worker
        return worker

    async def get_worker(self, worker_id: str) -> WorkerView | None:
        worker = self._workers.get(worker_id)
        if worker is None:
            return None
        return self._view(worker)

    async def list_workers(self) -> list[WorkerView]:
        """Roster with active job counts derived from current reports."""
        return [self._view(worker) for worker in self._workers.values()]

    def active_jobs(self, worker_id: str) -> int:
        return sum(
            1
            for report in self._reports.values()
            if report.assigned_worker_id == worker_id and report.status in ACTIVE_STATUSES
        )

    def _view(self, worker: Worker) -> WorkerView:
        return WorkerView(**worker.model_dump(), active_jobs=self.active_jobs(worker.id))

    # =========================
    # Tokens
    # =========================

    async def revoke_token(self, jti: str, expires_at: datetime) -> None:
        """Deny ``jti`` until its expiry; ids whose tokens have expired are pruned."""
        now = datetime.now(timezone.utc)
        async with self._lock:
            self._revoked_tokens = {
                key: exp for key, exp in self._revoked_tokens.items() if exp > now
            }
            self._revoked_tokens[jti] = expires_at

    async def is_token_revoked(self, jti: str) -> bool:
        return jti in self._revoked_tokens

    @property
    def revoked_token_count(self) -> int:
        return len(self._revoked_tokens)

    # =========================
    # Audit trail
    # =========================

    async def record_audit(self, entry: dict[str, Any]) -> None:
        async with self._lock:
            self._audit.append(entry)

    async def audit_entries(self, limit: int = 100) -> list[dict[str, Any]]:
        """Most recent audit entries first."""
        return list(reversed(self._audit))[:limit]


# Global store (lazy initialization)
_store: Store | None = None


def get_store() -> Store:
    """Get or create the process-wide store."""
    global _store
    if _store is None:
        _store = Store()
    return _store


def reset_store() -> Store:
    """Replace the process-wide store with an empty one."""
    global _store
    _store = Store()
    logger.debug("Store reset")
    return _store
