from retrophoto.domain.models.drain import DeliveryReceipt, DrainResult, QueueOpenReport
from retrophoto.domain.models.notification import ClientAction, ClientDecision, NotificationIntent
from retrophoto.domain.models.queue_item import (
    DELIVERABLE_STATUSES,
    FINISHED_STATUSES,
    LIVE_STATUSES,
    QueueItem,
    QueueItemStatus,
    UploadPayload,
)

__all__ = [
    "DELIVERABLE_STATUSES",
    "FINISHED_STATUSES",
    "LIVE_STATUSES",
    "ClientAction",
    "ClientDecision",
    "DeliveryReceipt",
    "DrainResult",
    "NotificationIntent",
    "QueueItem",
    "QueueItemStatus",
    "QueueOpenReport",
    "UploadPayload",
]
