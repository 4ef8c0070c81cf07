"""Notification domain models.

``NotificationIntent`` is created when an outcome needs the user's attention
and discarded once shown; ``ClientDecision`` is what a notification click
resolved to. Neither is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from retrophoto.config.notifications import DEFAULT_BODY, DEFAULT_ICON, DEFAULT_TITLE


@dataclass(frozen=True)
class NotificationIntent:
    title: str = DEFAULT_TITLE
    body: str = DEFAULT_BODY
    target_url: str = "/"
    icon: str = DEFAULT_ICON
    badge: str = DEFAULT_ICON
    vibrate: tuple[int, ...] = (200, 100, 200)
    tag: str | None = None

    def to_options(self) -> dict[str, Any]:
        """Render the display payload consumed by the platform notification API."""
        options: dict[str, Any] = {
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "vibrate": list(self.vibrate),
            "data": {"url": self.target_url},
        }
        if self.tag:
            options["tag"] = self.tag
        return options


class ClientAction(str, Enum):
    FOCUS = "focus"
    OPEN = "open"
    NONE = "none"


@dataclass(frozen=True)
class ClientDecision:
    """Result of a notification click: exactly one focus, one open, or nothing."""

    action: ClientAction
    url: str
    client_id: str | None = None

    @property
    def focused(self) -> bool:
        return self.action == ClientAction.FOCUS

    @property
    def opened(self) -> bool:
        return self.action == ClientAction.OPEN
