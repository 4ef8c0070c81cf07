from __future__ import annotations

from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._validators import _parse_int_in_range

UPLOAD_SYNC_TAG = "upload-queue"


class UploadQueueConfig(BaseModel):
    """Offline upload queue limits and drain behaviour."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    retry_ceiling: int = Field(
        default=5,
        validation_alias="UPLOAD_QUEUE_RETRY_CEILING",
        description="Failed delivery attempts before an item is expired",
    )
    max_items: int = Field(
        default=100,
        validation_alias="UPLOAD_QUEUE_MAX_ITEMS",
        description="Maximum live items; enqueue fails beyond this",
    )
    max_age_hours: int = Field(
        default=72,
        validation_alias="UPLOAD_QUEUE_MAX_AGE_HOURS",
        description="Items older than this are expired when the queue is opened",
    )
    batch_size: int = Field(
        default=50,
        validation_alias="UPLOAD_QUEUE_BATCH_SIZE",
        description="Rows fetched per page while listing pending items",
    )
    in_flight_lease_seconds: int = Field(
        default=900,
        validation_alias="UPLOAD_QUEUE_IN_FLIGHT_LEASE_SEC",
        description="How long a claimed item belongs to its drain before open() may reclaim it",
    )
    sync_tag: str = Field(default=UPLOAD_SYNC_TAG, validation_alias="UPLOAD_SYNC_TAG")
    drain_concurrency: int = Field(
        default=1,
        validation_alias="UPLOAD_DRAIN_CONCURRENCY",
        description="Concurrent deliveries per drain cycle (1 = strictly sequential)",
    )

    @field_validator("retry_ceiling", mode="before")
    @classmethod
    def _validate_retry_ceiling(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Upload queue retry ceiling", default=5, minimum=1, maximum=50
        )

    @field_validator("max_items", mode="before")
    @classmethod
    def _validate_max_items(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Upload queue max items", default=100, minimum=1, maximum=10_000
        )

    @field_validator("max_age_hours", mode="before")
    @classmethod
    def _validate_max_age(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Upload queue max age (hours)", default=72, minimum=1, maximum=24 * 90
        )

    @field_validator("batch_size", mode="before")
    @classmethod
    def _validate_batch_size(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Upload queue batch size", default=50, minimum=1, maximum=1000
        )

    @field_validator("in_flight_lease_seconds", mode="before")
    @classmethod
    def _validate_lease(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Upload in-flight lease (seconds)", default=900, minimum=1, maximum=86_400
        )

    @field_validator("drain_concurrency", mode="before")
    @classmethod
    def _validate_concurrency(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Upload drain concurrency", default=1, minimum=1, maximum=8
        )

    @field_validator("sync_tag", mode="before")
    @classmethod
    def _validate_sync_tag(cls, value: Any) -> str:
        tag = str(value or UPLOAD_SYNC_TAG).strip()
        if not tag:
            msg = "Upload sync tag cannot be empty"
            raise ValueError(msg)
        if len(tag) > 64 or any(ch.isspace() for ch in tag):
            msg = "Upload sync tag must be at most 64 characters without whitespace"
            raise ValueError(msg)
        return tag

    @property
    def in_flight_lease(self) -> timedelta:
        return timedelta(seconds=self.in_flight_lease_seconds)
