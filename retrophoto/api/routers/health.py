"""Health and metrics endpoints.

Provides:
- Database connectivity and integrity
- Live upload queue depth
- Prometheus exposition
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from retrophoto.api.dependencies import get_container
from retrophoto.api.models.responses import success_response
from retrophoto.core.logging_utils import get_logger
from retrophoto.core.time_utils import UTC
from retrophoto.di.container import Container
from retrophoto.observability.metrics import get_metrics, get_metrics_content_type

logger = get_logger(__name__)

router = APIRouter()


async def _check_database(container: Container) -> dict[str, Any]:
    """Check database connectivity, integrity and queue depth."""
    start = time.perf_counter()
    try:
        integrity_ok, integrity_result = await asyncio.to_thread(
            container.session.check_integrity
        )
        live = await container.queue_repository().count_live()
        latency_ms = (time.perf_counter() - start) * 1000
        result: dict[str, Any] = {
            "status": "healthy" if integrity_ok else "degraded",
            "latency_ms": round(latency_ms, 2),
            "integrity_ok": integrity_ok,
            "queue_depth": live,
        }
        if not integrity_ok:
            result["integrity_detail"] = integrity_result
        return result
    except Exception as exc:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            "health_check_db_failed",
            extra={"error": str(exc), "latency_ms": latency_ms},
        )
        return {
            "status": "unhealthy",
            "error": str(exc),
            "latency_ms": round(latency_ms, 2),
        }


@router.get("/health")
async def health_check(request: Request, container: Container = Depends(get_container)):
    database = await _check_database(container)
    payload = {
        "status": "healthy" if database["status"] == "healthy" else "unhealthy",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "checks": {"database": database},
    }
    response = success_response(
        payload, correlation_id=getattr(request.state, "correlation_id", None)
    )
    if payload["status"] != "healthy":
        return JSONResponse(status_code=503, content=response)
    return response


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())
