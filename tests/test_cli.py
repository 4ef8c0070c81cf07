"""Tests for the drain and status command-line tools."""

from __future__ import annotations

import asyncio
import json

from retrophoto.cli import drain_queue, queue_status
from retrophoto.config import load_config
from retrophoto.di.container import Container
from retrophoto.domain.models.queue_item import UploadPayload


def _seed(db_path: str, clock, *fingerprints: str) -> None:
    async def _run() -> None:
        container = Container(load_config(runtime={"db_path": db_path}), clock=clock)
        await container.startup()
        try:
            for fingerprint in fingerprints:
                await container.queue_repository().enqueue(
                    UploadPayload(file_bytes=b"\xff\xd8photo", fingerprint=fingerprint)
                )
        finally:
            await container.shutdown()

    asyncio.run(_run())


def _container(db_path: str, transport, clock) -> Container:
    return Container(load_config(runtime={"db_path": db_path}), transport=transport, clock=clock)


def test_drain_exits_zero_on_success(db_path, transport, clock, capsys) -> None:
    _seed(db_path, clock, "fp-a", "fp-b")

    code = drain_queue.main(["--json"], container=_container(db_path, transport, clock))

    assert code == 0
    assert transport.calls == ["fp-a", "fp-b"]
    output = json.loads(capsys.readouterr().out)
    assert output["items_delivered"] == 2


def test_drain_exits_one_when_retry_needed(db_path, transport, clock, failures) -> None:
    _seed(db_path, clock, "fp-a")
    transport.script("fp-a", failures.transient())

    code = drain_queue.main([], container=_container(db_path, transport, clock))

    assert code == 1


def test_drain_with_other_tag_does_nothing(db_path, transport, clock) -> None:
    _seed(db_path, clock, "fp-a")

    code = drain_queue.main(["--tag", "other"], container=_container(db_path, transport, clock))

    assert code == 0
    assert transport.calls == []


def test_queue_status_prints_counts(db_path, clock, capsys) -> None:
    _seed(db_path, clock, "fp-a")

    code = queue_status.main(["--db-path", db_path])

    assert code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["counts"]["pending"] == 1
    assert output["live"] == 1


def test_parse_args_accepts_db_path() -> None:
    args = drain_queue.parse_args(["--db-path", "/tmp/q.db", "--log-level", "DEBUG"])
    assert str(args.db_path) == "/tmp/q.db"
    assert args.log_level == "DEBUG"
