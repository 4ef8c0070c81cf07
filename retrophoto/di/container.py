"""Dependency injection container for wiring components.

This container provides a centralized place to configure and wire the
upload queue, the delivery transport, the sync coordinator and the platform
handles for a given host.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from collections.abc import Callable
from typing import Any

from retrophoto.adapters.delivery.upload_client import RestoreUploadClient
from retrophoto.adapters.platform.in_process import (
    InProcessNotificationPlatform,
    InProcessSyncRegistrar,
    InProcessWindowClients,
)
from retrophoto.adapters.platform.worker import BackgroundWorker
from retrophoto.application.use_cases.queue_upload import QueueUploadUseCase
from retrophoto.config.settings import AppConfig
from retrophoto.core.time_utils import utc_now
from retrophoto.db.session import DatabaseSessionManager
from retrophoto.infrastructure.persistence.sqlite.repositories.upload_queue_repository import (
    SqliteUploadQueueRepository,
)
from retrophoto.services.notification_dispatcher import NotificationDispatcher
from retrophoto.services.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class Container:
    """Dependency injection container.

    Example:
        ```python
        container = Container(load_config())
        await container.startup()

        result = await container.sync_coordinator().on_sync_signal("upload-queue")
        await container.shutdown()
        ```
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        transport: Any | None = None,
        notification_platform: Any | None = None,
        window_clients: Any | None = None,
        sync_registrar: Any | None = None,
        clock: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        """Initialize the container.

        Args:
            config: Loaded application configuration.
            transport: Optional upload transport (defaults to RestoreUploadClient).
            notification_platform: Optional notification host handle.
            window_clients: Optional window registry for notification clicks.
            sync_registrar: Optional background sync registrar.
            clock: Time source used by the queue (tests pin it).
        """
        self._config = config
        self._clock = clock

        self._session = DatabaseSessionManager(
            path=config.runtime.db_path,
            operation_timeout=config.database.operation_timeout,
            max_retries=config.database.max_retries,
        )
        self._transport = transport
        self._owns_transport = transport is None
        self._notification_platform = notification_platform or InProcessNotificationPlatform()
        self._window_clients = window_clients or InProcessWindowClients()
        self._sync_registrar = sync_registrar or InProcessSyncRegistrar()

        self._queue_repo: SqliteUploadQueueRepository | None = None
        self._dispatcher: NotificationDispatcher | None = None
        self._coordinator: SyncCoordinator | None = None
        self._worker: BackgroundWorker | None = None
        self._queue_upload: QueueUploadUseCase | None = None

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def session(self) -> DatabaseSessionManager:
        return self._session

    @property
    def sync_registrar(self) -> Any:
        return self._sync_registrar

    @property
    def notification_platform(self) -> Any:
        return self._notification_platform

    def queue_repository(self) -> SqliteUploadQueueRepository:
        if self._queue_repo is None:
            self._queue_repo = SqliteUploadQueueRepository(
                self._session, self._config.upload_queue, clock=self._clock
            )
        return self._queue_repo

    def transport(self) -> Any:
        if self._transport is None:
            self._transport = RestoreUploadClient(self._config.delivery)
        return self._transport

    def notification_dispatcher(self) -> NotificationDispatcher:
        if self._dispatcher is None:
            self._dispatcher = NotificationDispatcher(
                self._notification_platform, self._window_clients, self._config.notifications
            )
        return self._dispatcher

    def sync_coordinator(self) -> SyncCoordinator:
        if self._coordinator is None:
            self._coordinator = SyncCoordinator(
                self.queue_repository(),
                self.transport(),
                self.notification_dispatcher(),
                self._config.upload_queue,
            )
        return self._coordinator

    def background_worker(self) -> BackgroundWorker:
        if self._worker is None:
            self._worker = BackgroundWorker(
                self.sync_coordinator(), self.notification_dispatcher(), self._window_clients
            )
        return self._worker

    def queue_upload_use_case(self) -> QueueUploadUseCase:
        if self._queue_upload is None:
            self._queue_upload = QueueUploadUseCase(
                self.queue_repository(),
                self._sync_registrar,
                sync_tag=self._config.upload_queue.sync_tag,
                delivery_config=self._config.delivery,
            )
        return self._queue_upload

    async def startup(self) -> None:
        """Create tables and reclaim uploads abandoned by earlier drains."""
        await asyncio.to_thread(self._session.migrate)
        report = await self.queue_repository().open(
            stale_after=self._config.upload_queue.in_flight_lease
        )
        logger.info("container_started", extra={"open_report": report.model_dump()})

    async def shutdown(self) -> None:
        if self._owns_transport and isinstance(self._transport, RestoreUploadClient):
            await self._transport.aclose()
        self._session.close()
        logger.info("container_stopped")
