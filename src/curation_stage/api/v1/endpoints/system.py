"""System endpoints for the Curation API."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from curation_stage.api.v1.dependencies import SessionDep
from curation_stage.core.settings import settings
from curation_stage.services.assets import AssetStore
from curation_stage.services.deletion import RetryingDeletion

router = APIRouter(tags=["system"])


@router.get("/health")
async def get_system_health(request: Request, db: SessionDep) -> dict[str, object]:
    """Health check covering the database and the asset store.

    Returns:
        Dictionary with overall status, component health and version info
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {e}"

    store: AssetStore | None = getattr(request.app.state, "asset_store", None)
    if store is None:
        storage_status = "unavailable"
        pending_deletions = 0
    else:
        storage_status = "healthy" if store.root.is_dir() else "missing upload root"
        deletion = store.deletion
        pending_deletions = len(deletion.queue) if isinstance(deletion, RetryingDeletion) else 0

    healthy = db_status == "healthy" and storage_status == "healthy"
    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": int(time.time()),
        "components": {
            "database": db_status,
            "storage": storage_status,
        },
        "pending_deletions": pending_deletions,
        "version": settings.app_version,
    }
