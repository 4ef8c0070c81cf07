"""Tests for RestoreUploadClient using httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from retrophoto.adapters.delivery.upload_client import RestoreUploadClient, is_retryable_status
from retrophoto.config.delivery import DeliveryConfig
from retrophoto.domain.exceptions.domain_exceptions import DeliveryFailedError
from retrophoto.domain.models.queue_item import QueueItem


def _client(handler, **config) -> RestoreUploadClient:
    delivery = DeliveryConfig(base_url="https://retrophoto.test", **config)
    return RestoreUploadClient(
        delivery, client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )


@pytest.fixture
def item(make_payload) -> QueueItem:
    return QueueItem(payload=make_payload("fp-123", session_id="sess-1", filename="old.jpg"))


@pytest.mark.asyncio
async def test_posts_multipart_to_restore_endpoint(item) -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["content_type"] = request.headers["content-type"]
        seen["body"] = request.content
        return httpx.Response(
            200,
            json={
                "session_id": "sess-9",
                "restored_url": "https://cdn.test/restored.jpg",
                "deep_link": "https://retrophoto.test/result/sess-9",
            },
        )

    client = _client(handler)
    receipt = await client.deliver(item)

    assert seen["url"] == "https://retrophoto.test/api/restore"
    assert str(seen["content_type"]).startswith("multipart/form-data")
    body = seen["body"]
    assert b'name="fingerprint"' in body and b"fp-123" in body
    assert b'name="session_id"' in body
    assert b'name="file"; filename="old.jpg"' in body
    assert receipt.status_code == 200
    assert receipt.session_id == "sess-9"
    assert receipt.restored_url == "https://cdn.test/restored.jpg"
    assert receipt.result_path == "/result/sess-9"


@pytest.mark.asyncio
async def test_result_path_falls_back_to_session_id(item) -> None:
    client = _client(lambda request: httpx.Response(200, json={"session_id": "abc"}))
    receipt = await client.deliver(item)
    assert receipt.result_path == "/result/abc"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
async def test_transient_statuses_are_retryable(item, status) -> None:
    client = _client(lambda request: httpx.Response(status, json={"error": "try later"}))

    with pytest.raises(DeliveryFailedError) as exc_info:
        await client.deliver(item)

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 403, 413, 422])
async def test_client_errors_are_permanent(item, status) -> None:
    client = _client(lambda request: httpx.Response(status, json={"error": "Invalid file"}))

    with pytest.raises(DeliveryFailedError) as exc_info:
        await client.deliver(item)

    assert exc_info.value.retryable is False
    assert "Invalid file" in exc_info.value.message


@pytest.mark.asyncio
async def test_network_error_is_retryable(item) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(DeliveryFailedError) as exc_info:
        await client.deliver(item)

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_in_call_retries_recover_from_transient_error(item, monkeypatch) -> None:
    async def _no_sleep(*args, **kwargs) -> None:
        return None

    monkeypatch.setattr("retrophoto.adapters.delivery.upload_client.sleep_backoff", _no_sleep)
    responses = iter([httpx.Response(503), httpx.Response(200, json={})])
    client = _client(lambda request: next(responses), in_call_retries=2)

    receipt = await client.deliver(item)

    assert receipt.status_code == 200


@pytest.mark.asyncio
async def test_in_call_retries_skip_permanent_errors(item, monkeypatch) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400)

    client = _client(handler, in_call_retries=3)

    with pytest.raises(DeliveryFailedError):
        await client.deliver(item)
    assert len(calls) == 1


def test_retryable_status_table() -> None:
    assert is_retryable_status(503)
    assert is_retryable_status(599)
    assert not is_retryable_status(404)
