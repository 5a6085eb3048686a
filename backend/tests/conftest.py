"""Shared pytest fixtures for WasteWatch tests.

Every test gets a fresh in-memory store, its own upload directory and token
file, and rate limiting switched off.
"""

import asyncio
import os

import pytest
import pytest_asyncio

os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SEED_SAMPLE_DATA"] = "false"

from wastewatch import storage as storage_module  # noqa: E402
from wastewatch.api.auth import create_access_token  # noqa: E402
from wastewatch.api.middleware import reset_rate_limiter  # noqa: E402
from wastewatch.config import get_settings  # noqa: E402
from wastewatch.models.reports import WasteReport  # noqa: E402
from wastewatch.models.users import Role, User  # noqa: E402
from wastewatch.sample_data import build_sample_reports, load_sample_data  # noqa: E402
from wastewatch.store import Store, reset_store  # noqa: E402
from wastewatch.workflow import service as service_module  # noqa: E402

SAMPLE_PASSWORD = "password123"

# 1x1 transparent PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06"
    b"\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01"
    b"\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point uploads and the token file at tmp_path and reset singletons."""
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("CLIENT_TOKEN_PATH", str(tmp_path / "session.json"))
    get_settings.cache_clear()
    monkeypatch.setattr(storage_module, "_image_storage", None)
    monkeypatch.setattr(service_module, "_workflow", None)
    reset_rate_limiter()
    reset_store()

    yield get_settings()

    get_settings.cache_clear()
    reset_rate_limiter()


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def sample_reports() -> list[WasteReport]:
    """The four sample reports: Pending, Assigned, In Progress, Resolved."""
    return build_sample_reports()


@pytest.fixture
def store() -> Store:
    """An empty process-wide store."""
    return reset_store()


@pytest.fixture
def seeded_store(store: Store) -> Store:
    """The process-wide store loaded with sample accounts, workers and reports."""
    asyncio.run(load_sample_data(store, SAMPLE_PASSWORD))
    return store


@pytest_asyncio.fixture
async def loaded_store(store: Store) -> Store:
    """Async twin of seeded_store for tests that run inside the event loop."""
    await load_sample_data(store, SAMPLE_PASSWORD)
    return store


@pytest.fixture
def admin_user() -> User:
    return User(
        id="admin-1",
        name="City Admin",
        email="admin@wastemanagement.com",
        phone="+91-1123456789",
        role=Role.ADMIN,
    )


@pytest.fixture
def citizen_user() -> User:
    return User(
        id="citizen-1",
        name="Neha Kapoor",
        email="neha.kapoor@wastewatch.org",
        phone="+91-9988776655",
        role=Role.CITIZEN,
    )


def make_worker_user(worker_id: str = "1", name: str = "Amit Kumar") -> User:
    return User(
        id=worker_id,
        name=name,
        email=f"worker{worker_id}@wastemanagement.com",
        phone=f"+91-90000000{worker_id}",
        role=Role.WORKER,
    )


@pytest.fixture
def make_worker():
    """Factory for worker users by roster id."""
    return make_worker_user


@pytest.fixture
def worker_user() -> User:
    """Worker "1" (Amit Kumar, Central Delhi), assigned to sample report "2"."""
    return make_worker_user("1", "Amit Kumar")


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def headers_for():
    """Factory for bearer headers for any user."""
    return bearer


@pytest.fixture
def admin_headers(seeded_store, admin_user) -> dict[str, str]:
    return bearer(admin_user)


@pytest.fixture
def citizen_headers(seeded_store, citizen_user) -> dict[str, str]:
    return bearer(citizen_user)


@pytest.fixture
def worker_headers(seeded_store, worker_user) -> dict[str, str]:
    return bearer(worker_user)


@pytest.fixture
def app():
    from wastewatch.main import app

    return app


@pytest.fixture
def api_client(app, seeded_store):
    """TestClient against the app with sample data loaded."""
    from fastapi.testclient import TestClient

    return TestClient(app)
