"""Drains the durable upload queue when the host signals connectivity.

One drain cycle:
1. Open the queue (reclaim in-flight items whose lease ran out, purge
   finished ones).
2. Walk pending items oldest first, claiming each before delivery.
3. Persist the outcome of every attempt before moving to the next item.
4. Report success only when no retryable failure remains, so the host knows
   whether to reschedule the sync.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from retrophoto.config.upload_queue import UploadQueueConfig
from retrophoto.core.logging_utils import generate_correlation_id
from retrophoto.domain.exceptions.domain_exceptions import (
    DeliveryFailedError,
    DomainException,
    RetryCeilingExceededError,
    StorageUnavailableError,
)
from retrophoto.domain.models.drain import DeliveryReceipt, DrainResult
from retrophoto.domain.models.queue_item import QueueItem, QueueItemStatus
from retrophoto.observability.metrics import record_delivery, record_drain_cycle, set_queue_depth

if TYPE_CHECKING:
    from retrophoto.adapters.platform.protocols import UploadQueue, UploadTransport
    from retrophoto.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Runs drain cycles for the reserved upload sync tag."""

    def __init__(
        self,
        queue: UploadQueue,
        transport: UploadTransport,
        dispatcher: NotificationDispatcher | None = None,
        config: UploadQueueConfig | None = None,
    ) -> None:
        self._queue = queue
        self._transport = transport
        self._dispatcher = dispatcher
        self._config = config or UploadQueueConfig()
        # Overlapping signals for the same queue run one after another.
        self._cycle_lock = asyncio.Lock()

    @property
    def sync_tag(self) -> str:
        return self._config.sync_tag

    async def on_sync_signal(self, tag: str) -> DrainResult:
        """Handle a background sync signal.

        Tags other than the upload tag are ignored and reported as a
        successful, skipped result.
        """
        if tag != self._config.sync_tag:
            logger.debug("sync_tag_ignored", extra={"tag": tag})
            record_drain_cycle("ignored")
            return DrainResult(tag=tag, skipped=True)

        result = DrainResult(tag=tag, correlation_id=generate_correlation_id())
        started = time.perf_counter()
        async with self._cycle_lock:
            logger.info(
                "drain_cycle_started",
                extra={"correlation_id": result.correlation_id, "tag": tag},
            )
            try:
                await self._drain(result)
            except asyncio.CancelledError:
                logger.warning(
                    "drain_cycle_cancelled",
                    extra={
                        "correlation_id": result.correlation_id,
                        "items_attempted": result.items_attempted,
                    },
                )
                record_drain_cycle("cancelled")
                raise

        result.success = not result.retryable_errors
        result.duration_seconds = round(time.perf_counter() - started, 3)
        record_drain_cycle("success" if result.success else "retry")
        logger.info(
            "drain_cycle_completed",
            extra={
                "correlation_id": result.correlation_id,
                "success": result.success,
                "attempted": result.items_attempted,
                "delivered": result.items_delivered,
                "failed": result.items_failed,
                "expired": result.items_expired,
                "skipped": result.items_skipped,
                "duration_sec": result.duration_seconds,
            },
        )
        return result

    async def _drain(self, result: DrainResult) -> None:
        try:
            result.open_report = await self._queue.open(
                stale_after=self._config.in_flight_lease
            )
        except StorageUnavailableError as exc:
            logger.error(
                "drain_queue_open_failed",
                extra={"correlation_id": result.correlation_id, "error": exc.message},
            )
            result.record_error(f"Queue unavailable: {exc.message}", retryable=True)
            return

        if self._config.drain_concurrency <= 1:
            try:
                async for item in self._queue.list_pending():
                    if await self._claim(item, result):
                        await self._deliver_claimed(item, result)
            except StorageUnavailableError as exc:
                self._record_listing_failure(exc, result)
        else:
            semaphore = asyncio.Semaphore(self._config.drain_concurrency)

            async def _bounded(claimed: QueueItem) -> None:
                try:
                    await self._deliver_claimed(claimed, result)
                finally:
                    semaphore.release()

            # Claims happen in queue order; only the network calls overlap.
            # A listing failure stops new claims; started deliveries finish.
            async with asyncio.TaskGroup() as group:
                try:
                    async for item in self._queue.list_pending():
                        if not await self._claim(item, result):
                            continue
                        await semaphore.acquire()
                        group.create_task(_bounded(item))
                except StorageUnavailableError as exc:
                    self._record_listing_failure(exc, result)

        try:
            set_queue_depth(await self._queue.count_live())
        except StorageUnavailableError:
            logger.debug("queue_depth_refresh_failed")

    def _record_listing_failure(self, exc: StorageUnavailableError, result: DrainResult) -> None:
        logger.error(
            "drain_queue_listing_failed",
            extra={"correlation_id": result.correlation_id, "error": exc.message},
        )
        result.record_error(f"Queue unavailable: {exc.message}", retryable=True)

    async def _claim(self, item: QueueItem, result: DrainResult) -> bool:
        try:
            claimed = await self._queue.mark_in_flight(item.id)
        except StorageUnavailableError as exc:
            result.record_error(f"{item.id}: {exc.message}", retryable=True)
            return False
        if not claimed:
            result.items_skipped += 1
        return claimed

    async def _deliver_claimed(self, item: QueueItem, result: DrainResult) -> None:
        result.items_attempted += 1
        try:
            receipt = await self._transport.deliver(item)
        except DeliveryFailedError as exc:
            await self._record_failure(item, exc.message, result, permanent=not exc.retryable)
            return
        except Exception as exc:
            logger.exception(
                "upload_delivery_unexpected_error",
                extra={"correlation_id": result.correlation_id, "item_id": item.id},
            )
            await self._record_failure(item, f"{type(exc).__name__}: {exc}", result)
            return

        try:
            await self._queue.mark_delivered(item.id)
        except DomainException as exc:
            # Still in flight; open() reclaims it once its lease runs out.
            logger.error(
                "upload_mark_delivered_failed",
                extra={
                    "correlation_id": result.correlation_id,
                    "item_id": item.id,
                    "error": exc.message,
                },
            )
            result.record_error(f"{item.id}: {exc.message}", retryable=True)
            return

        result.items_delivered += 1
        record_delivery("delivered")
        await self._notify_delivered(receipt, result)

    async def _record_failure(
        self, item: QueueItem, reason: str, result: DrainResult, *, permanent: bool = False
    ) -> None:
        try:
            status = await self._queue.mark_failed(item.id, reason, permanent=permanent)
        except DomainException as exc:
            logger.error(
                "upload_mark_failed_failed",
                extra={
                    "correlation_id": result.correlation_id,
                    "item_id": item.id,
                    "error": exc.message,
                },
            )
            result.record_error(f"{item.id}: {exc.message}", retryable=True)
            return

        if status == QueueItemStatus.EXPIRED:
            result.items_expired += 1
            record_delivery("expired")
            if permanent:
                message = f"{item.id}: rejected: {reason}"
            else:
                message = f"{item.id}: {RetryCeilingExceededError(item.id, item.attempts + 1).message}"
            result.record_error(message, retryable=False)
        else:
            result.items_failed += 1
            record_delivery("failed")
            result.record_error(f"{item.id}: {reason}", retryable=True)

    async def _notify_delivered(self, receipt: DeliveryReceipt | None, result: DrainResult) -> None:
        if self._dispatcher is None:
            return
        target = receipt.result_path if receipt is not None and receipt.result_path else None
        intent = self._dispatcher.build_intent(
            target_url=target or self._dispatcher.config.success_url
        )
        try:
            await self._dispatcher.dispatch(intent)
        except Exception:
            logger.exception(
                "delivery_notification_failed", extra={"correlation_id": result.correlation_id}
            )
