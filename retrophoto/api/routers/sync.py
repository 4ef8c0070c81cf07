"""Background sync trigger endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from retrophoto.api.dependencies import get_container
from retrophoto.api.exceptions import SyncRetryRequestedError
from retrophoto.api.models.responses import success_response
from retrophoto.core.logging_utils import get_logger
from retrophoto.di.container import Container

logger = get_logger(__name__)

router = APIRouter()


@router.post("/{tag}")
async def trigger_sync(tag: str, request: Request, container: Container = Depends(get_container)):
    """Run one drain cycle for ``tag``.

    Responds 503 with ``retryable: true`` when retryable failures remain, which
    is the signal for the caller to schedule the sync again.
    """
    result = await container.sync_coordinator().on_sync_signal(tag)
    if not result.success:
        raise SyncRetryRequestedError(
            f"Sync '{tag}' left {len(result.retryable_errors)} retryable failures",
            details=result.model_dump(mode="json"),
        )
    return success_response(result, correlation_id=getattr(request.state, "correlation_id", None))
