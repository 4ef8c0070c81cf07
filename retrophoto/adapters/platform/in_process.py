"""Platform handles for hosts without a browser: the API process and the CLI.

Notifications are logged and kept in memory, there are no windows, and
registering a sync tag only records it so the host can drain on demand.
"""

from __future__ import annotations

import logging
from typing import Any

from retrophoto.adapters.platform.protocols import WindowClient
from retrophoto.domain.exceptions.domain_exceptions import UnsupportedPlatformFeatureError

logger = logging.getLogger(__name__)


class InProcessNotificationPlatform:
    def __init__(self, *, enabled: bool = True, max_history: int = 100) -> None:
        self._enabled = enabled
        self._max_history = max_history
        self.shown: list[tuple[str, dict[str, Any]]] = []

    def supports_notifications(self) -> bool:
        return self._enabled

    async def show_notification(self, title: str, options: dict[str, Any]) -> None:
        if not self._enabled:
            msg = "Notifications are disabled for this host"
            raise UnsupportedPlatformFeatureError(msg)
        self.shown.append((title, options))
        overflow = len(self.shown) - max(0, self._max_history)
        if overflow > 0:
            del self.shown[:overflow]
        logger.info(
            "notification_shown",
            extra={"title": title, "target_url": options.get("data", {}).get("url")},
        )


class InProcessWindowClients:
    """Window registry; empty unless a host attaches clients."""

    def __init__(
        self, clients: list[WindowClient] | None = None, *, can_open: bool = False
    ) -> None:
        self._clients = list(clients or [])
        self._can_open = can_open
        self.focused: list[str] = []
        self.opened: list[str] = []
        self.claimed = False

    async def match_all(self) -> list[WindowClient]:
        return list(self._clients)

    async def focus(self, client_id: str) -> None:
        if not any(client.id == client_id for client in self._clients):
            msg = f"Window client {client_id} is gone"
            raise UnsupportedPlatformFeatureError(msg)
        self.focused.append(client_id)

    def can_open_window(self) -> bool:
        return self._can_open

    async def open_window(self, url: str) -> None:
        if not self._can_open:
            msg = "This host cannot open windows"
            raise UnsupportedPlatformFeatureError(msg)
        self.opened.append(url)

    async def claim(self) -> None:
        self.claimed = True


class InProcessSyncRegistrar:
    def __init__(self, *, supported: bool = True) -> None:
        self._supported = supported
        self.registered: set[str] = set()

    def is_supported(self) -> bool:
        return self._supported

    async def register(self, tag: str) -> None:
        if not self._supported:
            msg = "Background sync is not available on this host"
            raise UnsupportedPlatformFeatureError(msg)
        self.registered.add(tag)
        logger.debug("sync_tag_registered", extra={"tag": tag})
