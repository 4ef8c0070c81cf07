"""Shows notifications and routes notification clicks to application windows."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from retrophoto.config.notifications import NotificationConfig
from retrophoto.domain.exceptions.domain_exceptions import UnsupportedPlatformFeatureError
from retrophoto.domain.models.notification import ClientAction, ClientDecision, NotificationIntent
from retrophoto.observability.metrics import record_notification

if TYPE_CHECKING:
    from retrophoto.adapters.platform.protocols import (
        NotificationEvent,
        NotificationPlatform,
        WindowClient,
        WindowClients,
    )

logger = logging.getLogger(__name__)


def _comparable_path(url: str) -> str:
    """Reduce absolute or relative URLs to ``path[?query]`` for comparison."""
    parts = urlsplit(url.strip())
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


def parse_push_data(data: bytes | str | dict[str, Any] | None) -> dict[str, Any]:
    """Decode an optional push payload; anything unparseable counts as empty."""
    if data is None:
        return {}
    if isinstance(data, dict):
        return data
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("push_payload_not_utf8", extra={"size": len(data)})
            return {}
    if not data.strip():
        return {}
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as exc:
        logger.warning("push_payload_malformed", extra={"error": str(exc)})
        return {}
    return parsed if isinstance(parsed, dict) else {}


class NotificationDispatcher:
    def __init__(
        self,
        platform: NotificationPlatform,
        clients: WindowClients | None = None,
        config: NotificationConfig | None = None,
    ) -> None:
        self._platform = platform
        self._clients = clients
        self._config = config or NotificationConfig()

    @property
    def config(self) -> NotificationConfig:
        return self._config

    def build_intent(
        self,
        *,
        title: str | None = None,
        body: str | None = None,
        target_url: str | None = None,
        tag: str | None = None,
    ) -> NotificationIntent:
        """Create an intent, filling gaps from the configured defaults."""
        return NotificationIntent(
            title=title or self._config.default_title,
            body=body or self._config.default_body,
            target_url=target_url or self._config.default_url,
            icon=self._config.icon,
            badge=self._config.badge,
            vibrate=self._config.vibrate,
            tag=tag,
        )

    async def dispatch(self, intent: NotificationIntent) -> bool:
        """Show a notification. Returns ``False`` when the host cannot show one."""
        if not self._platform.supports_notifications():
            logger.debug("notification_unsupported", extra={"title": intent.title})
            record_notification("show", "unsupported")
            return False
        try:
            await self._platform.show_notification(intent.title, intent.to_options())
        except UnsupportedPlatformFeatureError as exc:
            logger.debug(
                "notification_unsupported", extra={"title": intent.title, "error": exc.message}
            )
            record_notification("show", "unsupported")
            return False
        record_notification("show", "shown")
        return True

    async def on_push(self, data: bytes | str | dict[str, Any] | None) -> NotificationIntent:
        """Turn a push message into a shown notification.

        Missing fields fall back to the defaults (``RetroPhoto`` / ``Your photo
        has been restored!`` / ``/``).
        """
        payload = parse_push_data(data)
        title = payload.get("title")
        body = payload.get("body")
        url = payload.get("url")
        intent = self.build_intent(
            title=str(title) if title else None,
            body=str(body) if body else None,
            target_url=url if isinstance(url, str) and url.strip() else None,
        )
        await self.dispatch(intent)
        return intent

    async def on_notification_click(self, event: NotificationEvent) -> ClientDecision:
        """Close the notification and bring the user to its target.

        Focuses the first open window already showing the target; otherwise
        opens a new one when the host allows it.
        """
        event.close()
        raw_url = event.data.get("url") if isinstance(event.data, dict) else None
        url = raw_url if isinstance(raw_url, str) and raw_url.strip() else self._config.default_url

        clients = self._clients
        if clients is None:
            record_notification("click", "none")
            return ClientDecision(action=ClientAction.NONE, url=url)

        decision = await self._focus_existing(clients, url)
        if decision is None:
            decision = await self._open_new(clients, url)

        record_notification("click", decision.action.value)
        logger.info(
            "notification_click_handled",
            extra={"action": decision.action.value, "target_url": url, "client_id": decision.client_id},
        )
        return decision

    async def _focus_existing(self, clients: WindowClients, url: str) -> ClientDecision | None:
        try:
            window_clients: list[WindowClient] = await clients.match_all()
        except UnsupportedPlatformFeatureError:
            window_clients = []

        target = _comparable_path(url)
        for client in window_clients:
            if _comparable_path(client.url) != target:
                continue
            try:
                await clients.focus(client.id)
            except UnsupportedPlatformFeatureError as exc:
                logger.debug(
                    "window_focus_failed", extra={"client_id": client.id, "error": exc.message}
                )
                continue
            return ClientDecision(action=ClientAction.FOCUS, url=url, client_id=client.id)
        return None

    async def _open_new(self, clients: WindowClients, url: str) -> ClientDecision:
        if not clients.can_open_window():
            return ClientDecision(action=ClientAction.NONE, url=url)
        try:
            await clients.open_window(url)
        except UnsupportedPlatformFeatureError as exc:
            logger.debug("window_open_failed", extra={"target_url": url, "error": exc.message})
            return ClientDecision(action=ClientAction.NONE, url=url)
        return ClientDecision(action=ClientAction.OPEN, url=url)
