from retrophoto.domain.exceptions.domain_exceptions import (
    DeliveryFailedError,
    DomainException,
    InvalidStateTransitionError,
    PayloadTooLargeError,
    ResourceNotFoundError,
    RetryCeilingExceededError,
    StorageUnavailableError,
    UnsupportedPlatformFeatureError,
    ValidationError,
)

__all__ = [
    "DeliveryFailedError",
    "DomainException",
    "InvalidStateTransitionError",
    "PayloadTooLargeError",
    "ResourceNotFoundError",
    "RetryCeilingExceededError",
    "StorageUnavailableError",
    "UnsupportedPlatformFeatureError",
    "ValidationError",
]
