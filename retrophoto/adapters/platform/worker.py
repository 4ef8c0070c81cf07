"""Thin glue between host events and the sync/notification handlers.

Hosts forward raw events here. Each handler returns an awaitable the host can
keep alive until it settles; a failed drain raises ``SyncRetryRequested`` so
the host reschedules the sync.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from retrophoto.adapters.platform.protocols import NotificationEvent
from retrophoto.domain.models.drain import DrainResult

if TYPE_CHECKING:
    from retrophoto.adapters.platform.protocols import WindowClients
    from retrophoto.domain.models.notification import ClientDecision, NotificationIntent
    from retrophoto.services.notification_dispatcher import NotificationDispatcher
    from retrophoto.services.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)

PROCESS_QUEUE_MESSAGE = "PROCESS_QUEUE"


class SyncRetryRequested(Exception):
    """Raised to tell the host the sync should run again later."""

    def __init__(self, result: DrainResult) -> None:
        super().__init__(f"Sync '{result.tag}' left {len(result.retryable_errors)} retryable failures")
        self.result = result


@dataclass
class WorkerEvent:
    kind: str
    tag: str | None = None
    data: Any = None
    notification: NotificationEvent | None = None
    extra: dict[str, Any] = field(default_factory=dict)


class BackgroundWorker:
    def __init__(
        self,
        coordinator: SyncCoordinator,
        dispatcher: NotificationDispatcher,
        clients: WindowClients | None = None,
    ) -> None:
        self._coordinator = coordinator
        self._dispatcher = dispatcher
        self._clients = clients

    async def on_sync(self, tag: str) -> DrainResult:
        result = await self._coordinator.on_sync_signal(tag)
        if not result.success:
            raise SyncRetryRequested(result)
        return result

    async def on_push(self, data: Any) -> NotificationIntent:
        return await self._dispatcher.on_push(data)

    async def on_notification_click(self, event: NotificationEvent) -> ClientDecision:
        return await self._dispatcher.on_notification_click(event)

    async def on_message(self, data: Any) -> DrainResult | None:
        """Handle page messages; ``{"type": "PROCESS_QUEUE"}`` drains the queue now."""
        if _is_process_queue(data):
            return await self.on_sync(self._coordinator.sync_tag)
        logger.debug("worker_message_ignored", extra={"message_type": _message_type(data)})
        return None

    async def on_activate(self) -> None:
        if self._clients is not None:
            await self._clients.claim()
        logger.info("worker_activated")

    async def handle_event(self, event: WorkerEvent) -> Any:
        """Route one host event.

        Drain events (``sync`` and the ``PROCESS_QUEUE`` message) settle only
        when the drain succeeded: any failure, including an unexpected error,
        raises ``SyncRetryRequested``. Errors from other handlers are logged
        and reported as ``None``.
        """
        try:
            if event.kind == "sync":
                return await self.on_sync(event.tag or "")
            if event.kind == "push":
                return await self.on_push(event.data)
            if event.kind == "notificationclick":
                notification = event.notification or NotificationEvent(
                    data=event.data if isinstance(event.data, dict) else {}
                )
                return await self.on_notification_click(notification)
            if event.kind == "message":
                return await self.on_message(event.data)
            if event.kind == "activate":
                return await self.on_activate()
        except SyncRetryRequested:
            raise
        except Exception as exc:
            logger.exception("worker_event_failed", extra={"kind": event.kind})
            if _is_drain_event(event):
                tag = event.tag if event.kind == "sync" else self._coordinator.sync_tag
                raise SyncRetryRequested(_failed_drain(tag or "", exc)) from exc
            return None

        logger.debug("worker_event_ignored", extra={"kind": event.kind})
        return None


def _message_type(data: Any) -> str | None:
    if isinstance(data, dict):
        value = data.get("type")
        return str(value) if value is not None else None
    return None


def _is_process_queue(data: Any) -> bool:
    return isinstance(data, dict) and data.get("type") == PROCESS_QUEUE_MESSAGE


def _is_drain_event(event: WorkerEvent) -> bool:
    return event.kind == "sync" or (event.kind == "message" and _is_process_queue(event.data))


def _failed_drain(tag: str, exc: Exception) -> DrainResult:
    result = DrainResult(tag=tag, success=False)
    result.record_error(f"{type(exc).__name__}: {exc}", retryable=True)
    return result
