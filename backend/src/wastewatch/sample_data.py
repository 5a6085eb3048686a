"""Sample data for development and testing.

Seeds the store with a realistic set of Delhi reports, the field-worker
roster and one account per role. Seeding is idempotent: a store that already
holds reports is left alone.
"""

from datetime import datetime
from functools import lru_cache

from .logging import get_logger
from .models.base import GeoLocation, ReportStatus, WasteType, Zone
from .models.reports import StatusEvent, WasteReport, estimate_completion
from .models.users import Role, UserAccount
from .models.workers import Worker
from .store import Store

logger = get_logger(__name__)

SAMPLE_ADMIN_EMAIL = "admin@wastemanagement.com"
SAMPLE_CITIZEN_EMAIL = "neha.kapoor@wastewatch.org"

SAMPLE_WORKERS = [
    Worker(
        id="1",
        name="Amit Kumar",
        phone="+91-9876543210",
        email="amit.kumar@wastemanagement.com",
        zone=Zone.CENTRAL,
    ),
    Worker(
        id="2",
        name="Suresh Yadav",
        phone="+91-8765432109",
        email="suresh.yadav@wastemanagement.com",
        zone=Zone.NORTH,
    ),
    Worker(
        id="3",
        name="Ravi Gupta",
        phone="+91-7654321098",
        email="ravi.gupta@wastemanagement.com",
        zone=Zone.SOUTH,
    ),
]


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def build_sample_reports() -> list[WasteReport]:
    """The four sample reports, one per lifecycle state."""
    pending = WasteReport(
        id="1",
        citizen_name="Rahul Sharma",
        citizen_phone="+91-9876543210",
        location=GeoLocation(lat=28.6139, lng=77.2090, address="Connaught Place, New Delhi"),
        zone=Zone.CENTRAL,
        description="Large pile of plastic waste near the bus stop",
        waste_type=WasteType.PLASTIC,
        severity=8.5,
        confidence=0.94,
        created_at=_ts("2024-01-15T10:30:00Z"),
        updated_at=_ts("2024-01-15T10:30:00Z"),
        history=[StatusEvent(to_status=ReportStatus.PENDING, at=_ts("2024-01-15T10:30:00Z"))],
    )

    assigned_at = _ts("2024-01-15T09:15:00Z")
    assigned = WasteReport(
        id="2",
        citizen_name="Priya Singh",
        citizen_phone="+91-8765432109",
        location=GeoLocation(lat=28.5355, lng=77.3910, address="Sector 18, Noida"),
        zone=Zone.EAST,
        description="Food waste accumulation near residential area",
        waste_type=WasteType.ORGANIC,
        severity=6.2,
        confidence=0.87,
        status=ReportStatus.ASSIGNED,
        assigned_worker="Amit Kumar",
        assigned_worker_id="1",
        assigned_at=assigned_at,
        created_at=_ts("2024-01-14T14:20:00Z"),
        updated_at=assigned_at,
        history=[
            StatusEvent(to_status=ReportStatus.PENDING, at=_ts("2024-01-14T14:20:00Z")),
            StatusEvent(
                from_status=ReportStatus.PENDING,
                to_status=ReportStatus.ASSIGNED,
                at=assigned_at,
                notes="Assigned to Amit Kumar",
            ),
        ],
    )
    assigned = assigned.model_copy(
        update={"estimated_completion_at": estimate_completion(assigned_at, assigned.priority)}
    )

    started_at = _ts("2024-01-14T11:30:00Z")
    in_progress = WasteReport(
        id="3",
        citizen_name="Arjun Patel",
        citizen_phone="+91-7654321098",
        location=GeoLocation(lat=28.7041, lng=77.1025, address="Model Town, Delhi"),
        zone=Zone.NORTH,
        description="Electronic waste dumped illegally",
        waste_type=WasteType.E_WASTE,
        severity=9.1,
        confidence=0.92,
        status=ReportStatus.IN_PROGRESS,
        assigned_worker="Suresh Yadav",
        assigned_worker_id="2",
        assigned_at=_ts("2024-01-14T08:00:00Z"),
        started_at=started_at,
        estimated_completion_at=_ts("2024-01-14T10:00:00Z"),
        created_at=_ts("2024-01-13T16:45:00Z"),
        updated_at=started_at,
    )

    completed_at = _ts("2024-01-13T15:20:00Z")
    resolved = WasteReport(
        id="4",
        citizen_name="Anita Verma",
        citizen_phone="+91-6543210987",
        location=GeoLocation(lat=28.5677, lng=77.2433, address="Lajpat Nagar, New Delhi"),
        zone=Zone.SOUTH,
        description="Medical waste found near hospital",
        waste_type=WasteType.MEDICAL,
        severity=9.8,
        confidence=0.96,
        status=ReportStatus.RESOLVED,
        assigned_worker="Ravi Gupta",
        assigned_worker_id="3",
        assigned_at=_ts("2024-01-12T10:00:00Z"),
        started_at=_ts("2024-01-12T11:00:00Z"),
        completed_at=completed_at,
        estimated_completion_at=_ts("2024-01-12T12:00:00Z"),
        actual_completion_minutes=1700,
        completion_notes="Collected and handed over to biomedical waste facility",
        created_at=_ts("2024-01-12T09:15:00Z"),
        updated_at=completed_at,
    )

    return [pending, assigned, in_progress, resolved]


@lru_cache(maxsize=4)
def _password_hash(password: str) -> str:
    from .api.auth import hash_password

    return hash_password(password)


def build_sample_accounts(password: str) -> list[UserAccount]:
    """Admin, citizen and one worker account per roster entry."""
    password_hash = _password_hash(password)
    accounts = [
        UserAccount(
            id="admin-1",
            name="City Admin",
            email=SAMPLE_ADMIN_EMAIL,
            phone="+91-1123456789",
            role=Role.ADMIN,
            password_hash=password_hash,
        ),
        UserAccount(
            id="citizen-1",
            name="Neha Kapoor",
            email=SAMPLE_CITIZEN_EMAIL,
            phone="+91-9988776655",
            role=Role.CITIZEN,
            password_hash=password_hash,
        ),
    ]
    accounts.extend(
        UserAccount(
            id=worker.id,
            name=worker.name,
            email=worker.email,
            phone=worker.phone,
            role=Role.WORKER,
            password_hash=password_hash,
        )
        for worker in SAMPLE_WORKERS
    )
    return accounts


async def load_sample_data(store: Store, password: str) -> bool:
    """Seed ``store`` unless it already has reports.

    Returns:
        True if data was loaded
    """
    if await store.list_reports():
        logger.info("Store already has reports, skipping sample data")
        return False

    for account in build_sample_accounts(password):
        await store.add_user(account)
    for worker in SAMPLE_WORKERS:
        await store.add_worker(worker)
    for report in build_sample_reports():
        await store.add_report(report)

    logger.info(
        "Loaded sample data",
        extra={"reports": 4, "workers": len(SAMPLE_WORKERS), "event": "sample_data_loaded"},
    )
    return True
