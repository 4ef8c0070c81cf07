"""
Pydantic models for API responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from retrophoto import __version__
from retrophoto.api.context import correlation_id_ctx
from retrophoto.api.exceptions import ErrorType
from retrophoto.core.time_utils import UTC


class MetaInfo(BaseModel):
    """Metadata for all API responses."""

    correlation_id: str = ""
    timestamp: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat().replace("+00:00", "Z")
    )
    version: str = __version__


class ErrorDetail(BaseModel):
    """Error details aligned to API error envelope."""

    code: str
    error_type: str = Field(default=ErrorType.INTERNAL.value, serialization_alias="errorType")
    message: str
    retryable: bool = False
    details: dict[str, Any] | None = None
    correlation_id: str = ""
    retry_after: int | None = None


class SuccessResponse(BaseModel):
    """Standard success response wrapper."""

    success: bool = True
    data: dict[str, Any]
    meta: MetaInfo = Field(default_factory=MetaInfo)


class ErrorResponse(BaseModel):
    """Standard error response wrapper."""

    success: bool = False
    error: ErrorDetail
    meta: MetaInfo = Field(default_factory=MetaInfo)


class QueuedUploadData(BaseModel):
    id: str
    sync_registered: bool
    queue_size: int | None


class QueueStatusData(BaseModel):
    """Per-status counts of the upload queue."""

    counts: dict[str, int]
    live: int
    sync_tag: str
    sync_registered: bool
    background_sync_supported: bool


class PushResultData(BaseModel):
    title: str
    body: str
    url: str
    options: dict[str, Any]


def build_meta(*, correlation_id: str | None = None) -> MetaInfo:
    """Construct meta with the context-aware correlation ID."""
    corr = correlation_id or correlation_id_ctx.get() or ""
    return MetaInfo(correlation_id=corr)


def success_response(
    data: BaseModel | dict[str, Any],
    *,
    correlation_id: str | None = None,
) -> dict[str, Any]:
    """Helper to build a standardized success response."""
    payload = data.model_dump(mode="json") if isinstance(data, BaseModel) else data
    meta = build_meta(correlation_id=correlation_id)
    return SuccessResponse(data=payload, meta=meta).model_dump()


def make_error(
    code: str,
    message: str,
    *,
    error_type: str | ErrorType | None = None,
    retryable: bool | None = None,
    details: dict[str, Any] | None = None,
    retry_after: int | None = None,
) -> ErrorDetail:
    """Create an ErrorDetail with proper typing and defaults."""
    if isinstance(error_type, ErrorType):
        error_type = error_type.value
    return ErrorDetail(
        code=code,
        error_type=error_type or ErrorType.INTERNAL.value,
        message=message,
        retryable=bool(retryable),
        details=details,
        retry_after=retry_after,
    )


def error_response(detail: ErrorDetail, *, correlation_id: str | None = None) -> dict[str, Any]:
    """Helper to build a standardized error response."""
    corr = correlation_id or correlation_id_ctx.get() or ""
    if not detail.correlation_id:
        detail = detail.model_copy(update={"correlation_id": corr})
    meta = build_meta(correlation_id=corr)
    return ErrorResponse(error=detail, meta=meta).model_dump(by_alias=True)
