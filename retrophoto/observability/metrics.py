"""Prometheus metrics for the upload sync worker.

Covers:
- Uploads accepted into the offline queue
- Delivery attempts by outcome
- Drain cycles by outcome
- Notifications shown/skipped
- Live queue depth

Usage:
    from retrophoto.observability.metrics import record_delivery

    record_delivery(outcome="delivered", latency_seconds=1.2)
"""

from __future__ import annotations

import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# Private registry so tests and multiple app instances do not collide with the default one.
REGISTRY = CollectorRegistry()

UPLOADS_ENQUEUED = Counter(
    "retrophoto_uploads_enqueued_total",
    "Uploads accepted into the offline queue",
    registry=REGISTRY,
)

UPLOAD_DELIVERIES = Counter(
    "retrophoto_upload_deliveries_total",
    "Queued upload delivery attempts",
    ["outcome"],
    registry=REGISTRY,
)

DELIVERY_LATENCY = Histogram(
    "retrophoto_upload_delivery_latency_seconds",
    "Latency of a single queued upload delivery",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY,
)

DRAIN_CYCLES = Counter(
    "retrophoto_drain_cycles_total",
    "Background sync drain cycles",
    ["outcome"],
    registry=REGISTRY,
)

NOTIFICATIONS = Counter(
    "retrophoto_notifications_total",
    "Notifications handled by the dispatcher",
    ["kind", "outcome"],
    registry=REGISTRY,
)

QUEUE_DEPTH = Gauge(
    "retrophoto_upload_queue_depth",
    "Live (pending, failed or in-flight) items in the upload queue",
    registry=REGISTRY,
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics in text format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST


def record_enqueued() -> None:
    UPLOADS_ENQUEUED.inc()


def record_delivery(outcome: str, latency_seconds: float | None = None) -> None:
    """Record a delivery attempt.

    Args:
        outcome: delivered, failed, expired or error
        latency_seconds: Optional latency of the network call
    """
    UPLOAD_DELIVERIES.labels(outcome=outcome).inc()
    if latency_seconds is not None:
        DELIVERY_LATENCY.observe(latency_seconds)


def record_drain_cycle(outcome: str) -> None:
    """Record a drain cycle outcome (success, retry, ignored)."""
    DRAIN_CYCLES.labels(outcome=outcome).inc()


def record_notification(kind: str, outcome: str) -> None:
    """Record a notification event (kind: show/click, outcome: shown/unsupported/focus/open)."""
    NOTIFICATIONS.labels(kind=kind, outcome=outcome).inc()


def set_queue_depth(depth: int) -> None:
    QUEUE_DEPTH.set(max(0, depth))
