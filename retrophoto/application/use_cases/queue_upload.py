"""Use case for deferring a photo upload until connectivity returns.

This is a command use case: it persists the upload, then asks the host to
schedule a background sync for the upload tag.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from retrophoto.config.delivery import DeliveryConfig
from retrophoto.config.upload_queue import UPLOAD_SYNC_TAG
from retrophoto.domain.exceptions.domain_exceptions import (
    PayloadTooLargeError,
    StorageUnavailableError,
    UnsupportedPlatformFeatureError,
)
from retrophoto.domain.models.queue_item import UploadPayload

if TYPE_CHECKING:
    from retrophoto.adapters.platform.protocols import SyncRegistrar, UploadQueue

logger = logging.getLogger(__name__)


@dataclass
class QueueUploadCommand:
    """Command for queueing one photo upload."""

    file_bytes: bytes
    fingerprint: str
    filename: str = "photo.jpg"
    content_type: str = "image/jpeg"
    session_id: str | None = None

    def to_payload(self) -> UploadPayload:
        return UploadPayload(
            file_bytes=self.file_bytes,
            fingerprint=self.fingerprint.strip(),
            filename=self.filename or "photo.jpg",
            content_type=self.content_type or "image/jpeg",
            session_id=self.session_id or None,
        )


@dataclass(frozen=True)
class QueueUploadResult:
    item_id: str
    sync_registered: bool
    # None when the depth could not be read after the item was stored.
    queue_size: int | None


class QueueUploadUseCase:
    """Persist an upload for later delivery and register the sync tag.

    Example:
        ```python
        use_case = QueueUploadUseCase(repository, registrar)
        result = await use_case.execute(QueueUploadCommand(file_bytes=data, fingerprint=fp))
        ```
    """

    def __init__(
        self,
        queue: UploadQueue,
        registrar: SyncRegistrar | None = None,
        *,
        sync_tag: str = UPLOAD_SYNC_TAG,
        delivery_config: DeliveryConfig | None = None,
    ) -> None:
        self._queue = queue
        self._registrar = registrar
        self._sync_tag = sync_tag
        self._delivery = delivery_config or DeliveryConfig()

    async def execute(self, command: QueueUploadCommand) -> QueueUploadResult:
        """Queue the upload.

        Raises:
            ValidationError: The payload is empty or not an image.
            PayloadTooLargeError: The photo exceeds ``max_upload_bytes``.
            StorageUnavailableError: The queue could not persist it. Nothing
                was written when this is raised.
        """
        payload = command.to_payload()
        if payload.size_bytes > self._delivery.max_upload_bytes:
            msg = f"Photo is larger than {self._delivery.max_upload_bytes} bytes"
            raise PayloadTooLargeError(
                msg,
                details={"size_bytes": payload.size_bytes, "max": self._delivery.max_upload_bytes},
            )

        item_id = await self._queue.enqueue(payload)
        registered = await self._register_sync()
        size = await self._queue_size_after_write(item_id)

        logger.info(
            "upload_queued",
            extra={"item_id": item_id, "sync_registered": registered, "queue_depth": size},
        )
        return QueueUploadResult(item_id=item_id, sync_registered=registered, queue_size=size)

    async def _register_sync(self) -> bool:
        registrar = self._registrar
        if registrar is None or not registrar.is_supported():
            logger.debug("background_sync_unsupported", extra={"tag": self._sync_tag})
            return False
        try:
            await registrar.register(self._sync_tag)
        except UnsupportedPlatformFeatureError as exc:
            logger.warning(
                "sync_registration_failed", extra={"tag": self._sync_tag, "error": exc.message}
            )
            return False
        except Exception as exc:
            logger.warning(
                "sync_registration_failed", extra={"tag": self._sync_tag, "error": str(exc)}
            )
            return False
        return True

    async def _queue_size_after_write(self, item_id: str) -> int | None:
        try:
            return await self.queue_size()
        except StorageUnavailableError as exc:
            logger.warning(
                "queue_size_unavailable", extra={"item_id": item_id, "error": exc.message}
            )
            return None

    async def queue_size(self) -> int:
        return await self._queue.count_live()

    def is_background_sync_supported(self) -> bool:
        return self._registrar is not None and self._registrar.is_supported()
