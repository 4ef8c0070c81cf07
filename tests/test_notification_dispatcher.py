"""Tests for push handling and notification click routing."""

from __future__ import annotations

import json

import pytest

from retrophoto.adapters.platform.in_process import (
    InProcessNotificationPlatform,
    InProcessWindowClients,
)
from retrophoto.adapters.platform.protocols import NotificationEvent, WindowClient
from retrophoto.config.notifications import NotificationConfig
from retrophoto.domain.exceptions.domain_exceptions import UnsupportedPlatformFeatureError
from retrophoto.domain.models.notification import ClientAction, NotificationIntent
from retrophoto.services.notification_dispatcher import NotificationDispatcher, parse_push_data


@pytest.fixture
def platform() -> InProcessNotificationPlatform:
    return InProcessNotificationPlatform()


@pytest.mark.asyncio
async def test_push_without_payload_uses_defaults(platform) -> None:
    dispatcher = NotificationDispatcher(platform)

    intent = await dispatcher.on_push(None)

    assert intent.title == "RetroPhoto"
    assert intent.body == "Your photo has been restored!"
    assert intent.target_url == "/"
    assert platform.shown == [("RetroPhoto", intent.to_options())]


@pytest.mark.asyncio
async def test_push_with_payload_overrides_fields(platform) -> None:
    dispatcher = NotificationDispatcher(platform)
    data = json.dumps({"title": "Done", "body": "Ready", "url": "/result/42"}).encode()

    intent = await dispatcher.on_push(data)

    assert (intent.title, intent.body, intent.target_url) == ("Done", "Ready", "/result/42")
    assert platform.shown[0][1]["vibrate"] == [200, 100, 200]


@pytest.mark.asyncio
async def test_malformed_push_payload_treated_as_empty(platform) -> None:
    dispatcher = NotificationDispatcher(platform)

    intent = await dispatcher.on_push(b"{not json")

    assert intent.title == "RetroPhoto"
    assert intent.target_url == "/"


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (None, {}),
        ("", {}),
        ("[1, 2]", {}),
        (b"\xff\xfe", {}),
        ('{"title": "x"}', {"title": "x"}),
        ({"url": "/a"}, {"url": "/a"}),
    ],
)
def test_parse_push_data(data, expected) -> None:
    assert parse_push_data(data) == expected


@pytest.mark.asyncio
async def test_dispatch_is_noop_when_unsupported() -> None:
    platform = InProcessNotificationPlatform(enabled=False)
    dispatcher = NotificationDispatcher(platform)

    shown = await dispatcher.dispatch(NotificationIntent())

    assert shown is False
    assert platform.shown == []


class _RaisingPlatform:
    def supports_notifications(self) -> bool:
        return True

    async def show_notification(self, title, options) -> None:
        raise UnsupportedPlatformFeatureError("permission denied")


@pytest.mark.asyncio
async def test_dispatch_swallows_platform_refusal() -> None:
    dispatcher = NotificationDispatcher(_RaisingPlatform())
    assert await dispatcher.dispatch(NotificationIntent()) is False


@pytest.mark.asyncio
async def test_click_focuses_matching_window(platform) -> None:
    clients = InProcessWindowClients(
        [
            WindowClient(id="w1", url="https://retrophoto.app/"),
            WindowClient(id="w2", url="https://retrophoto.app/foo"),
        ],
        can_open=True,
    )
    dispatcher = NotificationDispatcher(platform, clients)
    event = NotificationEvent(data={"url": "/foo"})

    decision = await dispatcher.on_notification_click(event)

    assert decision.action == ClientAction.FOCUS
    assert decision.client_id == "w2"
    assert clients.focused == ["w2"]
    assert clients.opened == []
    assert event.closed is True


@pytest.mark.asyncio
async def test_click_opens_window_when_none_match(platform) -> None:
    clients = InProcessWindowClients(
        [WindowClient(id="w1", url="https://retrophoto.app/other")], can_open=True
    )
    dispatcher = NotificationDispatcher(platform, clients)

    decision = await dispatcher.on_notification_click(NotificationEvent(data={"url": "/foo"}))

    assert decision.action == ClientAction.OPEN
    assert clients.opened == ["/foo"]
    assert clients.focused == []


@pytest.mark.asyncio
async def test_click_without_url_targets_root(platform) -> None:
    clients = InProcessWindowClients(can_open=True)
    dispatcher = NotificationDispatcher(platform, clients)

    decision = await dispatcher.on_notification_click(NotificationEvent())

    assert decision.url == "/"
    assert clients.opened == ["/"]


@pytest.mark.asyncio
async def test_click_does_nothing_when_host_cannot_open(platform) -> None:
    clients = InProcessWindowClients(can_open=False)
    dispatcher = NotificationDispatcher(platform, clients)
    event = NotificationEvent(data={"url": "/foo"})

    decision = await dispatcher.on_notification_click(event)

    assert decision.action == ClientAction.NONE
    assert event.closed is True


@pytest.mark.asyncio
async def test_configured_defaults_are_used(platform) -> None:
    config = NotificationConfig(default_title="Restored", default_url="/home")
    dispatcher = NotificationDispatcher(platform, config=config)

    intent = await dispatcher.on_push(None)

    assert intent.title == "Restored"
    assert intent.target_url == "/home"


@pytest.mark.asyncio
async def test_click_without_window_registry_does_nothing(platform) -> None:
    dispatcher = NotificationDispatcher(platform)
    event = NotificationEvent(data={"url": "/foo"})

    decision = await dispatcher.on_notification_click(event)

    assert decision.action == ClientAction.NONE
    assert decision.url == "/foo"
    assert event.closed is True
