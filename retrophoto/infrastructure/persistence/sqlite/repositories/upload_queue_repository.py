"""SQLite implementation of the durable upload queue.

The queue survives process restarts: every state change is written before the
caller moves on, and ``open()`` repairs whatever an interrupted drain cycle
left behind.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

import peewee

from retrophoto.config.upload_queue import UploadQueueConfig
from retrophoto.core.time_utils import ensure_utc, utc_now
from retrophoto.db.models import QueuedUpload
from retrophoto.db.session import DatabaseSessionManager
from retrophoto.domain.exceptions.domain_exceptions import (
    ResourceNotFoundError,
    StorageUnavailableError,
)
from retrophoto.domain.models.drain import QueueOpenReport
from retrophoto.domain.models.queue_item import (
    DELIVERABLE_STATUSES,
    FINISHED_STATUSES,
    LIVE_STATUSES,
    QueueItem,
    QueueItemStatus,
    UploadPayload,
    new_item_id,
)
from retrophoto.infrastructure.persistence.sqlite.base import SqliteBaseRepository
from retrophoto.observability.metrics import record_enqueued, set_queue_depth

logger = logging.getLogger(__name__)

_DELIVERABLE = [s.value for s in DELIVERABLE_STATUSES]
_LIVE = [s.value for s in LIVE_STATUSES]
_FINISHED = [s.value for s in FINISHED_STATUSES]


def _naive(value: dt.datetime) -> dt.datetime:
    """Convert to the naive UTC form stored in SQLite."""
    return ensure_utc(value).replace(tzinfo=None)


def _to_domain(row: QueuedUpload) -> QueueItem:
    payload = UploadPayload(
        file_bytes=bytes(row.file_bytes),
        fingerprint=row.fingerprint,
        filename=row.filename,
        content_type=row.content_type,
        session_id=row.session_id,
    )
    return QueueItem(
        payload=payload,
        id=row.item_id,
        status=QueueItemStatus(row.status),
        attempts=row.attempts,
        last_error=row.last_error,
        enqueued_at=ensure_utc(row.enqueued_at),
        updated_at=ensure_utc(row.updated_at),
    )


class SqliteUploadQueueRepository(SqliteBaseRepository):
    """Durable FIFO of deferred photo uploads."""

    def __init__(
        self,
        session_manager: DatabaseSessionManager,
        config: UploadQueueConfig | None = None,
        *,
        clock: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        super().__init__(session_manager)
        self._config = config or UploadQueueConfig()
        self._clock = clock

    @property
    def config(self) -> UploadQueueConfig:
        return self._config

    @property
    def retry_ceiling(self) -> int:
        return self._config.retry_ceiling

    async def _guarded(
        self,
        operation: Callable[[], Any],
        *,
        operation_name: str,
        read_only: bool = False,
        transactional: bool = False,
    ) -> Any:
        """Run a queue operation, reporting storage faults as ``StorageUnavailableError``."""
        try:
            if transactional:
                return await self._execute_transaction(operation, operation_name=operation_name)
            return await self._execute(
                operation, operation_name=operation_name, read_only=read_only
            )
        except (peewee.DatabaseError, TimeoutError, OSError) as exc:
            logger.error(
                "upload_queue_storage_unavailable",
                extra={"operation": operation_name, "error": str(exc)},
            )
            msg = f"Upload queue storage unavailable during {operation_name}: {exc}"
            raise StorageUnavailableError(msg, details={"operation": operation_name}) from exc

    async def open(self, *, stale_after: dt.timedelta | None = None) -> QueueOpenReport:
        """Prepare the queue for a drain cycle or a fresh process.

        Creates the table when missing, purges ``delivered``/``expired`` rows,
        returns abandoned ``in-flight`` rows to ``pending`` and expires live
        rows older than ``max_age_hours``. Items expired here stay visible
        until the next open.

        With ``stale_after`` only rows claimed at least that long ago count as
        abandoned, so a drain running in another process keeps its claims.
        Without it every ``in-flight`` row is reset.
        """
        now = _naive(self._clock())
        claimed_before = now - stale_after if stale_after is not None else None
        cutoff = now - dt.timedelta(hours=self._config.max_age_hours)
        max_age_hours = self._config.max_age_hours

        def _open() -> QueueOpenReport:
            QueuedUpload.create_table(safe=True)
            purged = (
                QueuedUpload.delete().where(QueuedUpload.status.in_(_FINISHED)).execute()
            )
            abandoned = QueuedUpload.status == QueueItemStatus.IN_FLIGHT.value
            if claimed_before is not None:
                abandoned &= QueuedUpload.updated_at <= claimed_before
            recovered = (
                QueuedUpload.update(status=QueueItemStatus.PENDING.value, updated_at=now)
                .where(abandoned)
                .execute()
            )
            expired = (
                QueuedUpload.update(
                    status=QueueItemStatus.EXPIRED.value,
                    last_error=f"expired: older than {max_age_hours}h",
                    updated_at=now,
                )
                .where(QueuedUpload.status.in_(_DELIVERABLE) & (QueuedUpload.enqueued_at < cutoff))
                .execute()
            )
            return QueueOpenReport(
                recovered_in_flight=recovered, expired_by_age=expired, purged=purged
            )

        report: QueueOpenReport = await self._guarded(
            _open, operation_name="open_upload_queue", transactional=True
        )
        if report.recovered_in_flight or report.expired_by_age or report.purged:
            logger.info("upload_queue_opened", extra=report.model_dump())
        await self.refresh_depth()
        return report

    async def enqueue(self, payload: UploadPayload, *, item_id: str | None = None) -> str:
        """Persist a new ``pending`` item and return its id.

        Raises:
            StorageUnavailableError: The medium cannot be written or the queue is full.
        """
        new_id = item_id or new_item_id()
        now = _naive(self._clock())
        max_items = self._config.max_items

        def _insert() -> int:
            live = QueuedUpload.select().where(QueuedUpload.status.in_(_LIVE)).count()
            if live >= max_items:
                msg = f"Upload queue is full ({live}/{max_items} items)"
                raise StorageUnavailableError(msg, details={"live": live, "max_items": max_items})
            QueuedUpload.insert(
                item_id=new_id,
                status=QueueItemStatus.PENDING.value,
                attempts=0,
                file_bytes=payload.file_bytes,
                filename=payload.filename,
                content_type=payload.content_type,
                fingerprint=payload.fingerprint,
                session_id=payload.session_id,
                size_bytes=payload.size_bytes,
                enqueued_at=now,
                updated_at=now,
            ).execute()
            return live + 1

        depth = await self._guarded(_insert, operation_name="enqueue_upload", transactional=True)
        record_enqueued()
        set_queue_depth(depth)
        logger.info(
            "upload_enqueued",
            extra={"item_id": new_id, "size_bytes": payload.size_bytes, "queue_depth": depth},
        )
        return new_id

    async def list_pending(self, batch_size: int | None = None) -> AsyncIterator[QueueItem]:
        """Yield ``pending`` and ``failed`` items oldest first.

        Rows are read one page at a time with a keyset on
        ``(enqueued_at, seq)``, so marking items while iterating never skips
        or repeats one. Each call starts from the beginning.
        """
        page_size = batch_size or self._config.batch_size
        last_at: dt.datetime | None = None
        last_seq = 0

        while True:
            cursor_at, cursor_seq = last_at, last_seq

            def _page(
                cursor_at: dt.datetime | None = cursor_at, cursor_seq: int = cursor_seq
            ) -> list[tuple[QueueItem, dt.datetime, int]]:
                query = QueuedUpload.select().where(QueuedUpload.status.in_(_DELIVERABLE))
                if cursor_at is not None:
                    query = query.where(
                        (QueuedUpload.enqueued_at > cursor_at)
                        | ((QueuedUpload.enqueued_at == cursor_at) & (QueuedUpload.seq > cursor_seq))
                    )
                rows = query.order_by(QueuedUpload.enqueued_at, QueuedUpload.seq).limit(page_size)
                return [(_to_domain(row), row.enqueued_at, row.seq) for row in rows]

            page = await self._guarded(_page, operation_name="list_pending_uploads", read_only=True)
            if not page:
                return
            for item, enqueued_at, seq in page:
                last_at, last_seq = enqueued_at, seq
                yield item
            if len(page) < page_size:
                return

    async def mark_in_flight(self, item_id: str) -> bool:
        """Claim an item for delivery.

        Returns ``True`` only for the call that moved it out of
        ``pending``/``failed``; a second claim is a no-op.
        """
        now = _naive(self._clock())

        def _claim() -> int:
            return (
                QueuedUpload.update(status=QueueItemStatus.IN_FLIGHT.value, updated_at=now)
                .where((QueuedUpload.item_id == item_id) & QueuedUpload.status.in_(_DELIVERABLE))
                .execute()
            )

        claimed = await self._guarded(_claim, operation_name="claim_upload")
        if not claimed:
            logger.debug("upload_claim_skipped", extra={"item_id": item_id})
        return bool(claimed)

    def _load_for_update(self, item_id: str) -> tuple[QueuedUpload, QueueItem]:
        row = QueuedUpload.get_or_none(QueuedUpload.item_id == item_id)
        if row is None:
            msg = f"Queued upload {item_id} not found"
            raise ResourceNotFoundError(msg, details={"item_id": item_id})
        return row, _to_domain(row)

    async def mark_delivered(self, item_id: str) -> None:
        now = _naive(self._clock())

        def _deliver() -> None:
            row, item = self._load_for_update(item_id)
            item.mark_delivered()
            QueuedUpload.update(status=item.status.value, last_error=None, updated_at=now).where(
                QueuedUpload.seq == row.seq
            ).execute()

        await self._guarded(_deliver, operation_name="mark_upload_delivered", transactional=True)
        logger.info("upload_delivered", extra={"item_id": item_id})

    async def mark_failed(
        self, item_id: str, reason: str, *, permanent: bool = False
    ) -> QueueItemStatus:
        """Record a failed attempt and return the resulting status.

        The item becomes ``expired`` once ``attempts`` reaches the retry
        ceiling, or straight away when ``permanent`` is set.
        """
        now = _naive(self._clock())
        ceiling = self._config.retry_ceiling

        def _fail() -> QueueItem:
            row, item = self._load_for_update(item_id)
            item.mark_failed(reason, retry_ceiling=ceiling, permanent=permanent)
            QueuedUpload.update(
                status=item.status.value,
                attempts=item.attempts,
                last_error=item.last_error,
                updated_at=now,
            ).where(QueuedUpload.seq == row.seq).execute()
            return item

        item: QueueItem = await self._guarded(
            _fail, operation_name="mark_upload_failed", transactional=True
        )
        if item.status == QueueItemStatus.EXPIRED:
            logger.warning(
                "upload_expired",
                extra={
                    "item_id": item_id,
                    "attempts": item.attempts,
                    "retry_ceiling": ceiling,
                    "permanent": permanent,
                    "reason": reason,
                },
            )
        else:
            logger.info(
                "upload_delivery_failed",
                extra={"item_id": item_id, "attempts": item.attempts, "reason": reason},
            )
        return item.status

    async def get(self, item_id: str) -> QueueItem | None:
        def _get() -> QueueItem | None:
            row = QueuedUpload.get_or_none(QueuedUpload.item_id == item_id)
            return _to_domain(row) if row is not None else None

        return await self._guarded(_get, operation_name="get_upload", read_only=True)

    async def count_live(self) -> int:
        """Items still occupying the queue (pending, failed or in flight)."""

        def _count() -> int:
            return QueuedUpload.select().where(QueuedUpload.status.in_(_LIVE)).count()

        return await self._guarded(_count, operation_name="count_live_uploads", read_only=True)

    async def stats(self) -> dict[str, int]:
        def _stats() -> dict[str, int]:
            counts = {status.value: 0 for status in QueueItemStatus}
            query = QueuedUpload.select(
                QueuedUpload.status, peewee.fn.COUNT(QueuedUpload.seq).alias("n")
            ).group_by(QueuedUpload.status)
            for row in query:
                counts[row.status] = row.n
            return counts

        return await self._guarded(_stats, operation_name="upload_queue_stats", read_only=True)

    async def purge_finished(self) -> int:
        def _purge() -> int:
            return QueuedUpload.delete().where(QueuedUpload.status.in_(_FINISHED)).execute()

        purged = await self._guarded(_purge, operation_name="purge_finished_uploads")
        if purged:
            logger.info("upload_queue_purged", extra={"purged": purged})
        return purged

    async def refresh_depth(self) -> int:
        """Publish the live item count to the queue depth gauge."""
        depth = await self.count_live()
        set_queue_depth(depth)
        return depth
