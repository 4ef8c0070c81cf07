"""Pytest configuration and shared fixtures.

Every test gets its own SQLite file under ``tmp_path``; the session manager
opens a connection per operation, so ``:memory:`` databases cannot be shared.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from retrophoto.config.upload_queue import UploadQueueConfig
from retrophoto.core.time_utils import UTC
from retrophoto.db.session import DatabaseSessionManager
from retrophoto.domain.exceptions.domain_exceptions import DeliveryFailedError
from retrophoto.domain.models.drain import DeliveryReceipt
from retrophoto.domain.models.queue_item import QueueItem, UploadPayload
from retrophoto.infrastructure.persistence.sqlite.repositories.upload_queue_repository import (
    SqliteUploadQueueRepository,
)

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64 + b"\xff\xd9"


class FakeClock:
    """Deterministic clock; ``advance`` moves time forward."""

    def __init__(self, start: dt.datetime) -> None:
        self.now = start

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs: float) -> dt.datetime:
        self.now = self.now + dt.timedelta(**kwargs)
        return self.now


class FakeTransport:
    """Scripted upload transport.

    ``outcomes`` maps a fingerprint to a list of results consumed one per
    attempt; an exception instance is raised, anything else is returned.
    Unscripted items succeed.
    """

    def __init__(self) -> None:
        self.outcomes: dict[str, list[Any]] = {}
        self.calls: list[str] = []

    def script(self, fingerprint: str, *results: Any) -> None:
        self.outcomes.setdefault(fingerprint, []).extend(results)

    async def deliver(self, item: QueueItem) -> DeliveryReceipt | None:
        self.calls.append(item.payload.fingerprint)
        scripted = self.outcomes.get(item.payload.fingerprint)
        outcome = scripted.pop(0) if scripted else DeliveryReceipt(status_code=200)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def transient_failure(message: str = "HTTP 503: Service Unavailable") -> DeliveryFailedError:
    return DeliveryFailedError(message, retryable=True, status_code=503)


def permanent_failure(message: str = "HTTP 400: Bad Request") -> DeliveryFailedError:
    return DeliveryFailedError(message, retryable=False, status_code=400)


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "upload_queue.db")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(dt.datetime(2026, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def session(db_path: str) -> Iterator[DatabaseSessionManager]:
    manager = DatabaseSessionManager(path=db_path, operation_timeout=10.0)
    manager.migrate()
    yield manager
    manager.close()


@pytest.fixture
def queue_config() -> UploadQueueConfig:
    return UploadQueueConfig(retry_ceiling=3, max_items=100, max_age_hours=72, batch_size=2)


@pytest.fixture
def repository(
    session: DatabaseSessionManager, queue_config: UploadQueueConfig, clock: FakeClock
) -> SqliteUploadQueueRepository:
    return SqliteUploadQueueRepository(session, queue_config, clock=clock)


@pytest.fixture
def make_payload() -> Callable[..., UploadPayload]:
    def _make(fingerprint: str = "fp-1", **kwargs: Any) -> UploadPayload:
        kwargs.setdefault("file_bytes", JPEG_BYTES)
        return UploadPayload(fingerprint=fingerprint, **kwargs)

    return _make


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def failures() -> Any:
    """Factories for scripted delivery failures."""

    class _Failures:
        transient = staticmethod(transient_failure)
        permanent = staticmethod(permanent_failure)

    return _Failures
