"""HTTP transport that delivers queued uploads to the restore API."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import httpx

from retrophoto.config.delivery import DeliveryConfig
from retrophoto.core.backoff import sleep_backoff
from retrophoto.domain.exceptions.domain_exceptions import DeliveryFailedError
from retrophoto.domain.models.drain import DeliveryReceipt
from retrophoto.observability.metrics import DELIVERY_LATENCY

if TYPE_CHECKING:
    from typing import Self

    from retrophoto.domain.models.queue_item import QueueItem

logger = logging.getLogger(__name__)

# HTTP status codes worth another attempt on a later sync
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES or status_code >= 500


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or response.reason_phrase)
    return response.reason_phrase


def _result_path(body: dict[str, Any]) -> str | None:
    """Reduce the restore API's deep link to an in-app path."""
    link = body.get("deep_link")
    if isinstance(link, str) and link:
        parts = urlsplit(link)
        path = parts.path or "/"
        return f"{path}?{parts.query}" if parts.query else path
    session_id = body.get("session_id")
    if session_id:
        return f"/result/{session_id}"
    return None


class RestoreUploadClient:
    """Async client posting queued photos to ``POST {base_url}/api/restore``.

    Each call to :meth:`deliver` is one attempt from the queue's point of
    view. With ``in_call_retries`` above zero, transient failures are retried
    a few times inside the same attempt before the queue hears about them.
    """

    def __init__(
        self,
        config: DeliveryConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or DeliveryConfig()
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> Self:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout_sec)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def deliver(self, item: QueueItem) -> DeliveryReceipt:
        """Upload one queued photo.

        Raises:
            DeliveryFailedError: ``retryable`` tells the queue whether the item
                should stay queued (network faults, 408/429/5xx) or be expired
                (any other 4xx).
        """
        retries = self._config.in_call_retries
        for attempt in range(retries + 1):
            try:
                return await self._post(item)
            except DeliveryFailedError as exc:
                if not exc.retryable or attempt == retries:
                    raise
                logger.warning(
                    "upload_delivery_retry",
                    extra={
                        "item_id": item.id,
                        "attempt": attempt + 1,
                        "max_retries": retries,
                        "error": exc.message,
                    },
                )
                await sleep_backoff(attempt, backoff_base=1.0, max_delay=30.0)

        msg = f"Delivery of upload {item.id} failed"
        raise DeliveryFailedError(msg)

    async def _post(self, item: QueueItem) -> DeliveryReceipt:
        client = self._ensure_client()
        payload = item.payload
        data = {"fingerprint": payload.fingerprint}
        if payload.session_id:
            data["session_id"] = payload.session_id
        files = {"file": (payload.filename, payload.file_bytes, payload.content_type)}

        started = time.perf_counter()
        try:
            response = await client.post(
                self._config.restore_url,
                data=data,
                files=files,
                timeout=self._config.timeout_sec,
            )
        except (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError) as exc:
            logger.info(
                "upload_delivery_network_error",
                extra={"item_id": item.id, "error_type": type(exc).__name__, "error": str(exc)},
            )
            msg = f"Network error while uploading: {type(exc).__name__}"
            raise DeliveryFailedError(msg, retryable=True, details={"item_id": item.id}) from exc
        finally:
            DELIVERY_LATENCY.observe(time.perf_counter() - started)

        if response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            receipt = DeliveryReceipt(
                status_code=response.status_code,
                session_id=body.get("session_id"),
                restored_url=body.get("restored_url"),
                result_path=_result_path(body),
            )
            logger.debug(
                "upload_delivery_succeeded",
                extra={"item_id": item.id, "status": response.status_code},
            )
            return receipt

        retryable = is_retryable_status(response.status_code)
        message = f"HTTP {response.status_code}: {_error_message(response)}"
        raise DeliveryFailedError(
            message,
            retryable=retryable,
            status_code=response.status_code,
            details={"item_id": item.id},
        )
