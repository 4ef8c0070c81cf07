"""Domain-specific exceptions.

Queue and delivery failures are caught by the sync coordinator and turned
into queue-state transitions; only ``StorageUnavailableError`` from
``enqueue`` is meant to reach the uploading caller.
"""


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StorageUnavailableError(DomainException):
    """Raised when the durable queue medium cannot be read or written."""

    pass


class DeliveryFailedError(DomainException):
    """Raised when a queued upload could not be delivered to the restore API."""

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = True,
        status_code: int | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details)
        self.retryable = retryable
        self.status_code = status_code


class RetryCeilingExceededError(DomainException):
    """Raised when an item has used up its delivery attempts."""

    def __init__(self, item_id: str, attempts: int) -> None:
        super().__init__(
            f"Upload {item_id} exceeded its retry ceiling after {attempts} attempts",
            details={"item_id": item_id, "attempts": attempts},
        )
        self.item_id = item_id
        self.attempts = attempts


class UnsupportedPlatformFeatureError(DomainException):
    """Raised by platform handles lacking a capability (notifications, windows, sync)."""

    pass


class InvalidStateTransitionError(DomainException):
    """Raised when an invalid queue item state transition is attempted."""

    pass


class ResourceNotFoundError(DomainException):
    """Raised when a requested queue item does not exist."""

    pass


class ValidationError(DomainException):
    """Raised when domain validation fails."""

    pass


class PayloadTooLargeError(ValidationError):
    """Raised when a photo exceeds the largest upload the queue accepts."""

    pass
