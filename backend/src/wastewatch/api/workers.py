"""API endpoints for the field worker roster."""

from fastapi import APIRouter, Depends, Query

from ..models.base import Zone
from ..models.users import Permission
from ..store import Store, get_store
from . import NotFoundError, ok
from .auth import require_permission

router = APIRouter(
    prefix="/workers",
    tags=["workers"],
    dependencies=[Depends(require_permission(Permission.VIEW_WORKERS))],
)


@router.get("")
async def list_workers(
    zone: Zone | None = Query(None, description="Filter by zone"),
    q: str | None = Query(None, description="Search by name, email or phone"),
    store: Store = Depends(get_store),
) -> dict:
    """List workers with their current active job counts."""
    workers = await store.list_workers()
    if zone is not None:
        workers = [w for w in workers if w.zone == zone]
    if q:
        term = q.strip().lower()
        workers = [
            w
            for w in workers
            if term in w.name.lower() or term in w.email.lower() or term in w.phone.lower()
        ]
    return ok([worker.to_api() for worker in workers])


@router.get("/{worker_id}")
async def get_worker(worker_id: str, store: Store = Depends(get_store)) -> dict:
    """Get a single worker."""
    worker = await store.get_worker(worker_id)
    if worker is None:
        raise NotFoundError("Worker", worker_id)
    return ok(worker.to_api())
