"""Global exception handlers for the upload sync API.

Provides consistent error responses across all endpoints with correlation ID tracking.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from retrophoto.api.exceptions import APIException, ErrorCode, ErrorType
from retrophoto.api.models.responses import error_response, make_error
from retrophoto.domain.exceptions.domain_exceptions import (
    DomainException,
    PayloadTooLargeError,
    ResourceNotFoundError,
    StorageUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)


async def api_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle custom API exceptions."""
    if not isinstance(exc, APIException):
        raise exc

    correlation_id = getattr(request.state, "correlation_id", None)

    logger.error(
        f"API error: {exc.error_code.value} - {exc.message}",
        exc_info=False,
        extra={
            "correlation_id": correlation_id,
            "error_code": exc.error_code.value,
            "error_type": exc.error_type.value,
            "status_code": exc.status_code,
            "retryable": exc.retryable,
            "path": request.url.path,
        },
    )

    detail = make_error(
        code=exc.error_code.value,
        message=exc.message,
        error_type=exc.error_type,
        retryable=exc.retryable,
        details=exc.details or None,
        retry_after=exc.retry_after,
    )
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(detail, correlation_id=correlation_id),
        headers=headers,
    )


async def domain_exception_handler(request: Request, exc: Exception) -> Response:
    """Map domain errors that escaped a router onto the API envelope."""
    if not isinstance(exc, DomainException):
        raise exc

    correlation_id = getattr(request.state, "correlation_id", None)

    if isinstance(exc, StorageUnavailableError):
        code, error_type, status_code, retryable = (
            ErrorCode.STORAGE_UNAVAILABLE,
            ErrorType.STORAGE,
            status.HTTP_503_SERVICE_UNAVAILABLE,
            True,
        )
    elif isinstance(exc, PayloadTooLargeError):
        code, error_type, status_code, retryable = (
            ErrorCode.PAYLOAD_TOO_LARGE,
            ErrorType.VALIDATION,
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            False,
        )
    elif isinstance(exc, ValidationError):
        code, error_type, status_code, retryable = (
            ErrorCode.VALIDATION_ERROR,
            ErrorType.VALIDATION,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            False,
        )
    elif isinstance(exc, ResourceNotFoundError):
        code, error_type, status_code, retryable = (
            ErrorCode.NOT_FOUND,
            ErrorType.NOT_FOUND,
            status.HTTP_404_NOT_FOUND,
            False,
        )
    else:
        code, error_type, status_code, retryable = (
            ErrorCode.INTERNAL_ERROR,
            ErrorType.INTERNAL,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            False,
        )

    logger.warning(
        "domain_error",
        extra={
            "correlation_id": correlation_id,
            "error_code": code.value,
            "error": exc.message,
            "path": request.url.path,
        },
    )

    detail = make_error(
        code=code.value,
        message=exc.message,
        error_type=error_type,
        retryable=retryable,
        details=exc.details or None,
    )
    return JSONResponse(
        status_code=status_code, content=error_response(detail, correlation_id=correlation_id)
    )


async def validation_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle request validation errors."""
    if not isinstance(exc, RequestValidationError):
        raise exc

    correlation_id = getattr(request.state, "correlation_id", None)

    formatted_errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "Request validation failed",
        extra={
            "correlation_id": correlation_id,
            "errors": formatted_errors,
            "path": request.url.path,
        },
    )

    detail = make_error(
        code=ErrorCode.VALIDATION_ERROR.value,
        message="Request validation failed",
        error_type=ErrorType.VALIDATION,
        retryable=False,
        details={"fields": formatted_errors},
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response(detail, correlation_id=correlation_id),
    )


async def global_exception_handler(request: Request, exc: Exception) -> Response:
    """Catch-all for unhandled exceptions."""
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.exception(
        "Unhandled exception",
        extra={"correlation_id": correlation_id, "path": request.url.path},
    )

    detail = make_error(
        code=ErrorCode.INTERNAL_ERROR.value,
        message="An unexpected error occurred",
        error_type=ErrorType.INTERNAL,
        retryable=False,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(detail, correlation_id=correlation_id),
    )
