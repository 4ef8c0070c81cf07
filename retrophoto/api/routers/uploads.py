"""Offline upload queue endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status

from retrophoto.api.dependencies import get_container
from retrophoto.api.exceptions import PayloadTooLargeError as PayloadTooLargeAPIError
from retrophoto.api.exceptions import StorageUnavailableError as StorageUnavailableAPIError
from retrophoto.api.exceptions import ValidationError as APIValidationError
from retrophoto.api.models.responses import QueuedUploadData, QueueStatusData, success_response
from retrophoto.application.use_cases.queue_upload import QueueUploadCommand
from retrophoto.core.logging_utils import get_logger
from retrophoto.di.container import Container
from retrophoto.domain.exceptions.domain_exceptions import (
    PayloadTooLargeError,
    StorageUnavailableError,
    ValidationError,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post("/queue", status_code=status.HTTP_201_CREATED)
async def queue_upload(
    request: Request,
    file: UploadFile = File(...),
    fingerprint: str = Form(...),
    session_id: str | None = Form(default=None),
    container: Container = Depends(get_container),
):
    """Accept a photo for deferred delivery and schedule a background sync."""
    max_bytes = container.config.delivery.max_upload_bytes
    # Read one byte past the limit so oversize files are never held in full.
    file_bytes = await file.read(max_bytes + 1)
    if len(file_bytes) > max_bytes:
        raise PayloadTooLargeAPIError(
            f"Photo is larger than {max_bytes} bytes", details={"max": max_bytes}
        )
    command = QueueUploadCommand(
        file_bytes=file_bytes,
        fingerprint=fingerprint,
        filename=file.filename or "photo.jpg",
        content_type=file.content_type or "image/jpeg",
        session_id=session_id,
    )
    try:
        result = await container.queue_upload_use_case().execute(command)
    except PayloadTooLargeError as exc:
        raise PayloadTooLargeAPIError(exc.message, details=exc.details) from exc
    except ValidationError as exc:
        raise APIValidationError(exc.message, details=exc.details) from exc
    except StorageUnavailableError as exc:
        raise StorageUnavailableAPIError(exc.message, details=exc.details) from exc

    return success_response(
        QueuedUploadData(
            id=result.item_id,
            sync_registered=result.sync_registered,
            queue_size=result.queue_size,
        ),
        correlation_id=getattr(request.state, "correlation_id", None),
    )


@router.get("/queue")
async def queue_status(request: Request, container: Container = Depends(get_container)):
    """Per-status counts of the upload queue."""
    repository = container.queue_repository()
    use_case = container.queue_upload_use_case()
    sync_tag = container.config.upload_queue.sync_tag
    try:
        counts = await repository.stats()
        live = await repository.count_live()
    except StorageUnavailableError as exc:
        raise StorageUnavailableAPIError(exc.message, details=exc.details) from exc

    registered = sync_tag in getattr(container.sync_registrar, "registered", set())
    return success_response(
        QueueStatusData(
            counts=counts,
            live=live,
            sync_tag=sync_tag,
            sync_registered=registered,
            background_sync_supported=use_case.is_background_sync_supported(),
        ),
        correlation_id=getattr(request.state, "correlation_id", None),
    )
