"""Tests for routing host events through the background worker."""

from __future__ import annotations

import pytest

from retrophoto.adapters.platform.in_process import (
    InProcessNotificationPlatform,
    InProcessWindowClients,
)
from retrophoto.adapters.platform.protocols import WindowClient
from retrophoto.adapters.platform.worker import BackgroundWorker, SyncRetryRequested, WorkerEvent
from retrophoto.domain.exceptions.domain_exceptions import StorageUnavailableError
from retrophoto.domain.models.notification import ClientAction
from retrophoto.services.notification_dispatcher import NotificationDispatcher
from retrophoto.services.sync_coordinator import SyncCoordinator


@pytest.fixture
def clients() -> InProcessWindowClients:
    return InProcessWindowClients([WindowClient(id="w1", url="http://localhost/app")])


@pytest.fixture
def worker(repository, transport, clients, queue_config) -> BackgroundWorker:
    dispatcher = NotificationDispatcher(InProcessNotificationPlatform(), clients)
    coordinator = SyncCoordinator(repository, transport, dispatcher, queue_config)
    return BackgroundWorker(coordinator, dispatcher, clients)


@pytest.mark.asyncio
async def test_sync_event_drains_queue(worker, repository, transport, make_payload) -> None:
    await repository.enqueue(make_payload("A"))

    result = await worker.handle_event(WorkerEvent(kind="sync", tag="upload-queue"))

    assert result.success is True
    assert transport.calls == ["A"]


@pytest.mark.asyncio
async def test_failed_sync_requests_reschedule(
    worker, repository, transport, make_payload, failures
) -> None:
    await repository.enqueue(make_payload("A"))
    transport.script("A", failures.transient())

    with pytest.raises(SyncRetryRequested) as exc_info:
        await worker.handle_event(WorkerEvent(kind="sync", tag="upload-queue"))

    assert exc_info.value.result.items_failed == 1


@pytest.mark.asyncio
async def test_process_queue_message_drains(worker, repository, transport, make_payload) -> None:
    await repository.enqueue(make_payload("A"))

    result = await worker.handle_event(WorkerEvent(kind="message", data={"type": "PROCESS_QUEUE"}))

    assert result.items_delivered == 1


@pytest.mark.asyncio
async def test_other_messages_ignored(worker, transport) -> None:
    result = await worker.handle_event(WorkerEvent(kind="message", data={"type": "PING"}))
    assert result is None
    assert transport.calls == []


@pytest.mark.asyncio
async def test_push_event_shows_notification(worker) -> None:
    intent = await worker.handle_event(WorkerEvent(kind="push", data=b'{"body": "Hi"}'))
    assert intent.body == "Hi"


@pytest.mark.asyncio
async def test_notification_click_focuses_client(worker, clients) -> None:
    decision = await worker.handle_event(
        WorkerEvent(kind="notificationclick", data={"url": "/app"})
    )
    assert decision.action == ClientAction.FOCUS
    assert clients.focused == ["w1"]


@pytest.mark.asyncio
async def test_activate_claims_clients(worker, clients) -> None:
    await worker.handle_event(WorkerEvent(kind="activate"))
    assert clients.claimed is True


@pytest.mark.asyncio
async def test_unknown_event_ignored(worker) -> None:
    assert await worker.handle_event(WorkerEvent(kind="fetch")) is None


class _ExplodingDispatcher:
    async def on_push(self, data):
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_handler_errors_do_not_escape(repository, transport) -> None:
    worker = BackgroundWorker(SyncCoordinator(repository, transport), _ExplodingDispatcher())
    assert await worker.handle_event(WorkerEvent(kind="push", data=None)) is None


@pytest.mark.asyncio
async def test_storage_fault_during_sync_requests_reschedule(
    worker, repository, make_payload, monkeypatch
) -> None:
    await repository.enqueue(make_payload("A"))
    original = repository._guarded

    async def _guarded(operation, *, operation_name, **kwargs):
        if operation_name == "list_pending_uploads":
            raise StorageUnavailableError("disk I/O error")
        return await original(operation, operation_name=operation_name, **kwargs)

    monkeypatch.setattr(repository, "_guarded", _guarded)

    with pytest.raises(SyncRetryRequested) as exc_info:
        await worker.handle_event(WorkerEvent(kind="sync", tag="upload-queue"))

    assert exc_info.value.result.retryable_errors == ["Queue unavailable: disk I/O error"]


class _BrokenCoordinator:
    sync_tag = "upload-queue"

    async def on_sync_signal(self, tag):
        raise RuntimeError("disk gone")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "event",
    [
        WorkerEvent(kind="sync", tag="upload-queue"),
        WorkerEvent(kind="message", data={"type": "PROCESS_QUEUE"}),
    ],
)
async def test_unexpected_drain_error_requests_reschedule(event) -> None:
    worker = BackgroundWorker(_BrokenCoordinator(), _ExplodingDispatcher())

    with pytest.raises(SyncRetryRequested) as exc_info:
        await worker.handle_event(event)

    result = exc_info.value.result
    assert result.tag == "upload-queue"
    assert result.success is False
    assert result.retryable_errors == ["RuntimeError: disk gone"]


@pytest.mark.asyncio
async def test_failed_process_queue_message_requests_reschedule(
    worker, repository, transport, make_payload, failures
) -> None:
    await repository.enqueue(make_payload("A"))
    transport.script("A", failures.transient())

    with pytest.raises(SyncRetryRequested):
        await worker.handle_event(WorkerEvent(kind="message", data={"type": "PROCESS_QUEUE"}))
