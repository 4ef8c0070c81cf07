"""Tests for drain cycles run by the sync coordinator."""

from __future__ import annotations

import asyncio

import pytest

from retrophoto.adapters.platform.in_process import InProcessNotificationPlatform
from retrophoto.config.upload_queue import UploadQueueConfig
from retrophoto.domain.exceptions.domain_exceptions import StorageUnavailableError
from retrophoto.domain.models.drain import DeliveryReceipt
from retrophoto.domain.models.queue_item import QueueItemStatus
from retrophoto.infrastructure.persistence.sqlite.repositories.upload_queue_repository import (
    SqliteUploadQueueRepository,
)
from retrophoto.services.notification_dispatcher import NotificationDispatcher
from retrophoto.services.sync_coordinator import SyncCoordinator


@pytest.fixture
def platform() -> InProcessNotificationPlatform:
    return InProcessNotificationPlatform()


@pytest.fixture
def coordinator(repository, transport, platform, queue_config) -> SyncCoordinator:
    return SyncCoordinator(
        repository, transport, NotificationDispatcher(platform), queue_config
    )


@pytest.mark.asyncio
async def test_two_items_delivered_in_order(
    coordinator, repository, transport, platform, make_payload, clock
) -> None:
    a = await repository.enqueue(make_payload("A"))
    clock.advance(seconds=1)
    b = await repository.enqueue(make_payload("B"))

    result = await coordinator.on_sync_signal("upload-queue")

    assert result.success is True
    assert result.items_delivered == 2
    assert transport.calls == ["A", "B"]
    assert (await repository.get(a)).status == QueueItemStatus.DELIVERED
    assert (await repository.get(b)).status == QueueItemStatus.DELIVERED
    assert [title for title, _ in platform.shown] == ["RetroPhoto", "RetroPhoto"]
    assert platform.shown[0][1]["body"] == "Your photo has been restored!"
    assert platform.shown[0][1]["data"] == {"url": "/app"}


@pytest.mark.asyncio
async def test_transient_failure_reports_retry(
    coordinator, repository, transport, make_payload, failures
) -> None:
    c = await repository.enqueue(make_payload("C"))
    transport.script("C", failures.transient())

    result = await coordinator.on_sync_signal("upload-queue")

    assert result.success is False
    assert result.items_failed == 1
    item = await repository.get(c)
    assert item.status == QueueItemStatus.FAILED
    assert item.attempts == 1
    assert result.retryable_errors


@pytest.mark.asyncio
async def test_empty_queue_is_success(coordinator, transport) -> None:
    result = await coordinator.on_sync_signal("upload-queue")

    assert result.success is True
    assert result.items_attempted == 0
    assert transport.calls == []


@pytest.mark.asyncio
async def test_unknown_tag_is_ignored(coordinator, repository, transport, make_payload) -> None:
    item_id = await repository.enqueue(make_payload())

    result = await coordinator.on_sync_signal("content-refresh")

    assert result.skipped is True
    assert result.success is True
    assert transport.calls == []
    assert (await repository.get(item_id)).status == QueueItemStatus.PENDING


@pytest.mark.asyncio
async def test_client_error_expires_item_without_retry(
    coordinator, repository, transport, make_payload, failures
) -> None:
    item_id = await repository.enqueue(make_payload("bad"))
    transport.script("bad", failures.permanent())

    result = await coordinator.on_sync_signal("upload-queue")

    assert result.success is True
    assert result.items_expired == 1
    assert result.permanent_errors
    assert (await repository.get(item_id)).status == QueueItemStatus.EXPIRED


@pytest.mark.asyncio
async def test_unexpected_error_does_not_abort_cycle(
    coordinator, repository, transport, make_payload, clock
) -> None:
    a = await repository.enqueue(make_payload("A"))
    clock.advance(seconds=1)
    b = await repository.enqueue(make_payload("B"))
    transport.script("A", RuntimeError("boom"))

    result = await coordinator.on_sync_signal("upload-queue")

    assert result.success is False
    assert (await repository.get(a)).status == QueueItemStatus.FAILED
    assert (await repository.get(b)).status == QueueItemStatus.DELIVERED
    assert "RuntimeError: boom" in (await repository.get(a)).last_error


@pytest.mark.asyncio
async def test_item_expires_after_retry_ceiling(
    coordinator, repository, transport, make_payload, failures
) -> None:
    item_id = await repository.enqueue(make_payload("C"))
    transport.script("C", failures.transient(), failures.transient(), failures.transient())

    first = await coordinator.on_sync_signal("upload-queue")
    second = await coordinator.on_sync_signal("upload-queue")
    third = await coordinator.on_sync_signal("upload-queue")

    assert (first.success, second.success, third.success) == (False, False, True)
    assert third.items_expired == 1
    assert transport.calls == ["C", "C", "C"]
    assert (await repository.get(item_id)).status == QueueItemStatus.EXPIRED

    # A further cycle purges the item and has nothing to do
    fourth = await coordinator.on_sync_signal("upload-queue")
    assert fourth.items_attempted == 0
    assert await repository.get(item_id) is None


@pytest.mark.asyncio
async def test_failed_item_retried_on_next_cycle(
    coordinator, repository, transport, make_payload, failures
) -> None:
    item_id = await repository.enqueue(make_payload("C"))
    transport.script("C", failures.transient())

    await coordinator.on_sync_signal("upload-queue")
    result = await coordinator.on_sync_signal("upload-queue")

    assert result.success is True
    assert result.items_delivered == 1
    assert (await repository.get(item_id)).status == QueueItemStatus.DELIVERED


@pytest.mark.asyncio
async def test_interrupted_item_delivered_after_lease_expires(
    coordinator, repository, transport, make_payload, clock, queue_config
) -> None:
    item_id = await repository.enqueue(make_payload("A"))
    assert await repository.mark_in_flight(item_id)

    early = await coordinator.on_sync_signal("upload-queue")
    assert early.open_report.recovered_in_flight == 0
    assert transport.calls == []

    clock.advance(seconds=queue_config.in_flight_lease_seconds)
    result = await coordinator.on_sync_signal("upload-queue")

    assert result.open_report.recovered_in_flight == 1
    assert result.items_delivered == 1
    assert transport.calls == ["A"]


@pytest.mark.asyncio
async def test_notification_targets_result_path(
    coordinator, repository, transport, platform, make_payload
) -> None:
    await repository.enqueue(make_payload("A"))
    transport.script("A", DeliveryReceipt(status_code=200, result_path="/result/sess-9"))

    await coordinator.on_sync_signal("upload-queue")

    assert platform.shown[0][1]["data"] == {"url": "/result/sess-9"}


@pytest.mark.asyncio
async def test_no_notification_when_host_cannot_show(
    repository, transport, make_payload, queue_config
) -> None:
    platform = InProcessNotificationPlatform(enabled=False)
    coordinator = SyncCoordinator(
        repository, transport, NotificationDispatcher(platform), queue_config
    )
    await repository.enqueue(make_payload("A"))

    result = await coordinator.on_sync_signal("upload-queue")

    assert result.success is True
    assert platform.shown == []


@pytest.mark.asyncio
async def test_bounded_concurrency_delivers_each_item_once(
    session, transport, make_payload, clock
) -> None:
    config = UploadQueueConfig(drain_concurrency=3, batch_size=2)
    repository = SqliteUploadQueueRepository(session, config, clock=clock)
    coordinator = SyncCoordinator(repository, transport, None, config)
    ids = []
    for index in range(6):
        ids.append(await repository.enqueue(make_payload(f"fp-{index}")))
        clock.advance(seconds=1)

    result = await coordinator.on_sync_signal("upload-queue")

    assert result.success is True
    assert result.items_delivered == 6
    assert sorted(transport.calls) == sorted(f"fp-{i}" for i in range(6))
    stats = await repository.stats()
    assert stats["delivered"] == 6


@pytest.mark.asyncio
async def test_overlapping_signals_do_not_double_deliver(
    coordinator, repository, transport, make_payload, clock
) -> None:
    for index in range(3):
        await repository.enqueue(make_payload(f"fp-{index}"))
        clock.advance(seconds=1)

    results = await asyncio.gather(
        coordinator.on_sync_signal("upload-queue"),
        coordinator.on_sync_signal("upload-queue"),
    )

    assert sum(r.items_delivered for r in results) == 3
    assert len(transport.calls) == 3


class _UnavailableQueue:
    async def open(self, *, stale_after=None):
        raise StorageUnavailableError("disk I/O error")


@pytest.mark.asyncio
async def test_storage_failure_on_open_requests_retry(transport) -> None:
    coordinator = SyncCoordinator(_UnavailableQueue(), transport)

    result = await coordinator.on_sync_signal("upload-queue")

    assert result.success is False
    assert result.retryable_errors == ["Queue unavailable: disk I/O error"]
    assert transport.calls == []


def _fail_listing_after(repository, monkeypatch, pages: int) -> None:
    """Make ``list_pending`` raise a storage fault once ``pages`` pages were read."""
    original = repository._guarded
    served = {"pages": 0}

    async def _guarded(operation, *, operation_name, **kwargs):
        if operation_name == "list_pending_uploads":
            if served["pages"] >= pages:
                raise StorageUnavailableError("disk I/O error")
            served["pages"] += 1
        return await original(operation, operation_name=operation_name, **kwargs)

    monkeypatch.setattr(repository, "_guarded", _guarded)


@pytest.mark.asyncio
@pytest.mark.parametrize("concurrency", [1, 3])
async def test_storage_failure_while_listing_requests_retry(
    repository, transport, make_payload, clock, queue_config, monkeypatch, concurrency
) -> None:
    config = queue_config.model_copy(update={"drain_concurrency": concurrency})
    coordinator = SyncCoordinator(repository, transport, None, config)
    for index in range(3):
        await repository.enqueue(make_payload(f"fp-{index}"))
        clock.advance(seconds=1)
    # batch_size=2: the first page is delivered, the second read fails
    _fail_listing_after(repository, monkeypatch, pages=1)

    result = await coordinator.on_sync_signal("upload-queue")

    assert result.success is False
    assert result.items_delivered == 2
    assert result.retryable_errors == ["Queue unavailable: disk I/O error"]
    assert sorted(transport.calls) == ["fp-0", "fp-1"]


class _BlockingTransport:
    """Holds every delivery until ``release`` is set."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls: list[str] = []

    async def deliver(self, item):
        self.calls.append(item.payload.fingerprint)
        self.started.set()
        await self.release.wait()
        return DeliveryReceipt(status_code=200)


@pytest.mark.asyncio
async def test_second_host_leaves_claimed_item_alone(
    session, repository, transport, make_payload, clock, queue_config
) -> None:
    item_id = await repository.enqueue(make_payload("A"))
    blocking = _BlockingTransport()
    first_host = SyncCoordinator(repository, blocking, None, queue_config)
    second_host = SyncCoordinator(
        SqliteUploadQueueRepository(session, queue_config, clock=clock),
        transport,
        None,
        queue_config,
    )

    first_cycle = asyncio.create_task(first_host.on_sync_signal("upload-queue"))
    await blocking.started.wait()
    second = await second_host.on_sync_signal("upload-queue")

    assert second.success is True
    assert second.open_report.recovered_in_flight == 0
    assert second.items_attempted == 0
    assert transport.calls == []

    blocking.release.set()
    first = await first_cycle

    assert first.success is True
    assert first.items_delivered == 1
    assert blocking.calls == ["A"]
    assert (await repository.get(item_id)).status == QueueItemStatus.DELIVERED
