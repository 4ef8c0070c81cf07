"""Protocol definitions (ports) for the background sync worker.

The worker runs inside a host that may or may not offer notifications,
window management or background sync. Each capability is a Protocol so the
coordinator and dispatcher stay independent of the concrete host.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from retrophoto.domain.models.drain import DeliveryReceipt, QueueOpenReport
    from retrophoto.domain.models.queue_item import QueueItem, QueueItemStatus, UploadPayload


class UploadQueue(Protocol):
    async def open(self, *, stale_after: timedelta | None = None) -> QueueOpenReport: ...

    async def enqueue(self, payload: UploadPayload, *, item_id: str | None = None) -> str: ...

    def list_pending(self, batch_size: int | None = None) -> AsyncIterator[QueueItem]: ...

    async def mark_in_flight(self, item_id: str) -> bool: ...

    async def mark_delivered(self, item_id: str) -> None: ...

    async def mark_failed(
        self, item_id: str, reason: str, *, permanent: bool = False
    ) -> QueueItemStatus: ...

    async def count_live(self) -> int: ...

    async def stats(self) -> dict[str, int]: ...


class UploadTransport(Protocol):
    async def deliver(self, item: QueueItem) -> DeliveryReceipt | None: ...


class NotificationPlatform(Protocol):
    def supports_notifications(self) -> bool: ...

    async def show_notification(self, title: str, options: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class WindowClient:
    """An open application window the worker can focus."""

    id: str
    url: str


class WindowClients(Protocol):
    async def match_all(self) -> list[WindowClient]: ...

    async def focus(self, client_id: str) -> None: ...

    def can_open_window(self) -> bool: ...

    async def open_window(self, url: str) -> None: ...

    async def claim(self) -> None: ...


class SyncRegistrar(Protocol):
    def is_supported(self) -> bool: ...

    async def register(self, tag: str) -> None: ...


@dataclass
class NotificationEvent:
    """A click on a shown notification."""

    data: dict[str, Any] = field(default_factory=dict)
    closed: bool = False

    def close(self) -> None:
        self.closed = True
