from retrophoto.adapters.platform.in_process import (
    InProcessNotificationPlatform,
    InProcessSyncRegistrar,
    InProcessWindowClients,
)
from retrophoto.adapters.platform.protocols import NotificationEvent, WindowClient
from retrophoto.adapters.platform.worker import BackgroundWorker, SyncRetryRequested, WorkerEvent

__all__ = [
    "BackgroundWorker",
    "InProcessNotificationPlatform",
    "InProcessSyncRegistrar",
    "InProcessWindowClients",
    "NotificationEvent",
    "SyncRetryRequested",
    "WindowClient",
    "WorkerEvent",
]
