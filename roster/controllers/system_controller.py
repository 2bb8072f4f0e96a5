# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints (health, readiness, metrics, audit history).
Pure HTTP layer, no business logic.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from starlette.responses import Response

from roster.core.config import settings
from roster.core.dependencies import Container, get_container, get_history_repo
from roster.repositories.history_repository import HistoryRepository

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check():
    """Liveness probe for Docker and orchestration."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/ready")
def readiness_check(container: Container = Depends(get_container)):
    """Readiness probe. Verifies the database can serve traffic."""
    try:
        with container.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        schedules = container.schedule_repo.count()
    except Exception as exc:
        raise HTTPException(status_code=503, detail=f"Database unavailable: {exc}")
    return {
        "status": "ready",
        "service": settings.SERVICE_NAME,
        "database": "connected",
        "schedules_count": schedules,
    }


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics in OpenMetrics format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/api/v1/history")
def get_history(
    entity_id: Optional[str] = None,
    event_type: Optional[str] = None,
    limit: int = Query(default=None, ge=1, description="Max results"),
    history_repo: HistoryRepository = Depends(get_history_repo),
):
    """Audit log of schedule and swap events."""
    return history_repo.get_all(entity_id=entity_id, event_type=event_type, limit=limit)


@router.get("/api/v1/stats")
def get_stats(container: Container = Depends(get_container)):
    """Aggregated operational statistics."""
    stats = container.swap_service.get_stats()
    stats["total_schedules"] = container.schedule_repo.count()
    stats["total_history_events"] = container.history_repo.count()
    stats["event_types"] = container.history_repo.count_by_type()
    return stats
