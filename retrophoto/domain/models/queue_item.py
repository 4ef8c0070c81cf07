"""Queue item domain model.

A ``QueueItem`` is one photo upload that could not be delivered when the user
submitted it (offline, server error) and is waiting for background sync.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from retrophoto.core.time_utils import utc_now
from retrophoto.domain.exceptions.domain_exceptions import (
    InvalidStateTransitionError,
    ValidationError,
)


class QueueItemStatus(str, Enum):
    """Lifecycle of a deferred upload."""

    PENDING = "pending"
    IN_FLIGHT = "in-flight"
    FAILED = "failed"
    DELIVERED = "delivered"
    EXPIRED = "expired"


# Statuses a drain cycle may pick up.
DELIVERABLE_STATUSES = (QueueItemStatus.PENDING, QueueItemStatus.FAILED)
# Statuses still occupying queue capacity.
LIVE_STATUSES = (QueueItemStatus.PENDING, QueueItemStatus.FAILED, QueueItemStatus.IN_FLIGHT)
# Statuses purged when the queue is opened.
FINISHED_STATUSES = (QueueItemStatus.DELIVERED, QueueItemStatus.EXPIRED)


def new_item_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class UploadPayload:
    """Photo bytes plus the metadata captured at the original upload attempt."""

    file_bytes: bytes
    fingerprint: str
    filename: str = "photo.jpg"
    content_type: str = "image/jpeg"
    session_id: str | None = None

    def __post_init__(self) -> None:
        if not self.file_bytes:
            raise ValidationError("Upload payload cannot be empty")
        if not self.fingerprint or not self.fingerprint.strip():
            raise ValidationError("Upload payload requires a fingerprint")
        if not self.content_type.startswith("image/"):
            raise ValidationError(
                f"Unsupported content type: {self.content_type}",
                details={"content_type": self.content_type},
            )

    @property
    def size_bytes(self) -> int:
        return len(self.file_bytes)


@dataclass
class QueueItem:
    """Domain model for a queued upload and its delivery state machine."""

    payload: UploadPayload
    id: str = field(default_factory=new_item_id)
    status: QueueItemStatus = QueueItemStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
    enqueued_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def _transition(self, target: QueueItemStatus, allowed: tuple[QueueItemStatus, ...]) -> None:
        if self.status not in allowed:
            raise InvalidStateTransitionError(
                f"Cannot move upload {self.id} from {self.status.value} to {target.value}",
                details={"item_id": self.id, "from": self.status.value, "to": target.value},
            )
        self.status = target
        self.updated_at = utc_now()

    def mark_in_flight(self) -> None:
        """Claim the item for one delivery attempt."""
        self._transition(QueueItemStatus.IN_FLIGHT, DELIVERABLE_STATUSES)

    def mark_delivered(self) -> None:
        self._transition(QueueItemStatus.DELIVERED, (QueueItemStatus.IN_FLIGHT,))

    def mark_failed(self, reason: str, *, retry_ceiling: int, permanent: bool = False) -> None:
        """Record a failed attempt.

        The item expires instead of returning to ``failed`` once it has used
        ``retry_ceiling`` attempts, or immediately for permanent rejections.
        """
        if self.status != QueueItemStatus.IN_FLIGHT:
            raise InvalidStateTransitionError(
                f"Cannot record a failure for upload {self.id} in status {self.status.value}",
                details={"item_id": self.id, "from": self.status.value},
            )
        self.attempts += 1
        self.last_error = reason
        if permanent or self.attempts >= retry_ceiling:
            self._transition(QueueItemStatus.EXPIRED, (QueueItemStatus.IN_FLIGHT,))
        else:
            self._transition(QueueItemStatus.FAILED, (QueueItemStatus.IN_FLIGHT,))

    def is_deliverable(self) -> bool:
        return self.status in DELIVERABLE_STATUSES

    def is_retryable_failure(self) -> bool:
        """True when the item failed and still has attempts left."""
        return self.status == QueueItemStatus.FAILED

    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES
