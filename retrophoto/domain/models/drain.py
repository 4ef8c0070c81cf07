"""Results reported by delivery attempts and drain cycles."""

from __future__ import annotations

from pydantic import BaseModel, Field


class DeliveryReceipt(BaseModel):
    """What the restore API answered for one delivered upload."""

    status_code: int
    session_id: str | None = None
    restored_url: str | None = None
    result_path: str | None = None


class QueueOpenReport(BaseModel):
    """Recovery and cleanup performed when the queue is opened."""

    recovered_in_flight: int = 0
    expired_by_age: int = 0
    purged: int = 0


class DrainResult(BaseModel):
    """Outcome of one background-sync drain cycle.

    ``success`` is what gets reported back to the platform: ``False`` asks it
    to reschedule the sync because retryable items remain.
    """

    tag: str
    success: bool = True
    skipped: bool = False
    correlation_id: str | None = None
    items_attempted: int = 0
    items_delivered: int = 0
    items_failed: int = 0
    items_expired: int = 0
    items_skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    retryable_errors: list[str] = Field(default_factory=list)
    permanent_errors: list[str] = Field(default_factory=list)
    open_report: QueueOpenReport | None = None
    duration_seconds: float = 0.0

    def record_error(self, message: str, *, retryable: bool) -> None:
        if message not in self.errors:
            self.errors.append(message)
        if retryable:
            self.retryable_errors.append(message)
        else:
            self.permanent_errors.append(message)
