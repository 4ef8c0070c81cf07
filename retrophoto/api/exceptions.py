"""Error codes and exceptions for the upload sync API."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for API responses."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    SYNC_RETRY_REQUESTED = "SYNC_RETRY_REQUESTED"


class ErrorType(str, Enum):
    """Categories of errors for client handling."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STORAGE = "storage"
    SYNC = "sync"
    INTERNAL = "internal"


_ERROR_TYPE_MAP: dict[ErrorCode, ErrorType] = {
    ErrorCode.VALIDATION_ERROR: ErrorType.VALIDATION,
    ErrorCode.NOT_FOUND: ErrorType.NOT_FOUND,
    ErrorCode.PAYLOAD_TOO_LARGE: ErrorType.VALIDATION,
    ErrorCode.INTERNAL_ERROR: ErrorType.INTERNAL,
    ErrorCode.STORAGE_UNAVAILABLE: ErrorType.STORAGE,
    ErrorCode.SYNC_RETRY_REQUESTED: ErrorType.SYNC,
}

_RETRYABLE_CODES: set[ErrorCode] = {
    ErrorCode.STORAGE_UNAVAILABLE,
    ErrorCode.SYNC_RETRY_REQUESTED,
}


class APIException(Exception):
    """Base exception for all API errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        error_type: ErrorType | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        self.error_type = error_type or _ERROR_TYPE_MAP.get(error_code, ErrorType.INTERNAL)
        self.retryable = retryable if retryable is not None else (error_code in _RETRYABLE_CODES)
        self.retry_after = retry_after


class ValidationError(APIException):
    """Raised when request validation fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=422,
            details=details,
        )


class PayloadTooLargeError(APIException):
    """Raised when an uploaded photo exceeds the accepted size."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.PAYLOAD_TOO_LARGE,
            status_code=413,
            details=details,
        )


class StorageUnavailableError(APIException):
    """Raised when the upload queue cannot accept or read items."""

    def __init__(self, message: str = "Upload queue storage unavailable", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.STORAGE_UNAVAILABLE,
            status_code=503,
            details=details,
        )


class SyncRetryRequestedError(APIException):
    """Raised when a drain cycle left retryable failures and should run again."""

    def __init__(self, message: str, details: dict[str, Any] | None = None, retry_after: int | None = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.SYNC_RETRY_REQUESTED,
            status_code=503,
            details=details,
            retry_after=retry_after,
        )
