"""Observability module for metrics."""

from retrophoto.observability.metrics import (
    DRAIN_CYCLES,
    QUEUE_DEPTH,
    UPLOAD_DELIVERIES,
    get_metrics,
    get_metrics_content_type,
    record_delivery,
    record_drain_cycle,
    record_enqueued,
    record_notification,
    set_queue_depth,
)

__all__ = [
    "DRAIN_CYCLES",
    "QUEUE_DEPTH",
    "UPLOAD_DELIVERIES",
    "get_metrics",
    "get_metrics_content_type",
    "record_delivery",
    "record_drain_cycle",
    "record_enqueued",
    "record_notification",
    "set_queue_depth",
]
