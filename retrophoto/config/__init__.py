from __future__ import annotations

from .database import DatabaseConfig
from .delivery import DeliveryConfig
from .notifications import DEFAULT_BODY, DEFAULT_TITLE, NotificationConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config
from .upload_queue import UPLOAD_SYNC_TAG, UploadQueueConfig

__all__ = [
    "DEFAULT_BODY",
    "DEFAULT_TITLE",
    "UPLOAD_SYNC_TAG",
    "AppConfig",
    "DatabaseConfig",
    "DeliveryConfig",
    "NotificationConfig",
    "RuntimeConfig",
    "Settings",
    "UploadQueueConfig",
    "load_config",
]
