"""Push message endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from retrophoto.api.dependencies import get_container
from retrophoto.api.models.responses import PushResultData, success_response
from retrophoto.di.container import Container

router = APIRouter()


@router.post("")
async def receive_push(request: Request, container: Container = Depends(get_container)):
    """Show a notification for a push message; the JSON body is optional."""
    body = await request.body()
    intent = await container.notification_dispatcher().on_push(body or None)
    return success_response(
        PushResultData(
            title=intent.title,
            body=intent.body,
            url=intent.target_url,
            options=intent.to_options(),
        ),
        correlation_id=getattr(request.state, "correlation_id", None),
    )
