from retrophoto.services.notification_dispatcher import NotificationDispatcher
from retrophoto.services.sync_coordinator import SyncCoordinator

__all__ = ["NotificationDispatcher", "SyncCoordinator"]
