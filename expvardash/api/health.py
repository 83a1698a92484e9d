"""Health and metrics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from expvardash.api.deps import get_app_settings, get_history, get_metrics, get_poller
from expvardash.config import Settings
from expvardash.history.ring import RingHistory
from expvardash.observability.metrics import InMemoryMetrics
from expvardash.workers.poller import Poller

SERVICE_NAME = "expvardash"
router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check(
    response: Response,
    settings: Settings = Depends(get_app_settings),
    poller: Poller = Depends(get_poller),
    history: RingHistory = Depends(get_history),
):
    poller_status = poller.status()
    healthy = poller_status["running"] and poller_status["consecutive_failures"] == 0
    if not poller_status["running"]:
        response.status_code = 503

    return {
        "status": "healthy" if healthy else "degraded",
        "service": SERVICE_NAME,
        "target": settings.target_url,
        "history_capacity": history.capacity,
        "poller": poller_status,
    }


@router.get("/health/live")
async def liveness_check():
    return {"status": "alive", "service": SERVICE_NAME}


@router.get("/metrics")
async def get_metrics_snapshot(metrics: InMemoryMetrics = Depends(get_metrics)):
    return {
        "service": SERVICE_NAME,
        "metrics": metrics.snapshot(),
    }
