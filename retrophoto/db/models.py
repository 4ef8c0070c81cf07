"""Peewee ORM models for the durable upload queue."""

from __future__ import annotations

import datetime as _dt
from typing import Any

import peewee

from retrophoto.core.time_utils import UTC

# Initialised with the concrete database by DatabaseSessionManager.
database_proxy: peewee.Database = peewee.DatabaseProxy()


def _utcnow() -> _dt.datetime:
    """Naive UTC timestamp; SQLite has no timezone type and peewee parses naive values."""
    return _dt.datetime.now(UTC).replace(tzinfo=None)


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    def save(self, *args: Any, **kwargs: Any) -> int:
        if hasattr(self, "updated_at"):
            self.updated_at = _utcnow()
        return super().save(*args, **kwargs)

    class Meta:
        database = database_proxy
        legacy_table_names = False


class QueuedUpload(BaseModel):
    """One deferred photo upload.

    ``seq`` breaks ties between items enqueued within the same timestamp so
    delivery order always matches enqueue order.
    """

    seq = peewee.AutoField()
    item_id = peewee.TextField(unique=True)
    status = peewee.TextField(default="pending")  # pending | in-flight | failed | delivered | expired
    attempts = peewee.IntegerField(default=0)
    last_error = peewee.TextField(null=True)
    file_bytes = peewee.BlobField()
    filename = peewee.TextField(default="photo.jpg")
    content_type = peewee.TextField(default="image/jpeg")
    fingerprint = peewee.TextField()
    session_id = peewee.TextField(null=True)
    size_bytes = peewee.IntegerField(default=0)
    enqueued_at = peewee.DateTimeField(default=_utcnow)
    updated_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "upload_queue"
        indexes = (
            (("status", "enqueued_at", "seq"), False),
            (("fingerprint",), False),
        )


ALL_MODELS: tuple[type[BaseModel], ...] = (QueuedUpload,)
