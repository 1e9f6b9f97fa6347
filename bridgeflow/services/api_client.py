"""
HTTP client shared by the coordinator-facing providers.

Safe requests (GET/HEAD/OPTIONS) that fail because the network is unreachable
are parked in the retry queue; the awaiting caller resumes when the queue is
drained after connectivity comes back. Mutating requests fail fast.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..core.recovery.errors import ErrorCategory, classify_error
from ..core.recovery.retry_queue import RequestConfig, RetryQueue, get_retry_queue


class ApiClient:
    """Thin async wrapper around ``httpx.AsyncClient`` with offline queueing."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        headers: Optional[Dict[str, str]] = None,
        timeout_s: Optional[float] = None,
        retry_queue: Optional[RetryQueue] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout_s = timeout_s or settings.order_timeout_seconds
        self.retry_queue = retry_queue if retry_queue is not None else get_retry_queue()
        self.logger = logger or logging.getLogger(__name__)
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if not self._client or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self.timeout_s,
                transport=self._transport,
            )
        return self._client

    async def _send(self, config: RequestConfig) -> httpx.Response:
        client = self._get_client()
        kwargs: Dict[str, Any] = {"params": config.params, "headers": config.headers or None}
        if config.json is not None:
            kwargs["json"] = config.json
        if config.timeout is not None:
            kwargs["timeout"] = config.timeout
        response = await client.request(config.method.upper(), config.url, **kwargs)
        response.raise_for_status()
        return response

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        queue_on_network_error: bool = True,
    ) -> httpx.Response:
        config = RequestConfig(
            method=method.upper(),
            url=url,
            params=params,
            json=json,
            headers=dict(headers or {}),
            timeout=timeout,
        )
        self.logger.debug("[API] %s %s", config.method, url)

        try:
            return await self._send(config)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 401:
                self.logger.warning("[API] Unauthorized request: %s %s", config.method, url)
            elif status == 429:
                self.logger.warning("[API] Rate limited: %s %s", config.method, url)
            else:
                self.logger.error("[API] Error %s: %s %s", status, config.method, url)
            raise
        except httpx.TransportError as exc:
            context = classify_error(exc)
            offline = context.category in (ErrorCategory.NETWORK, ErrorCategory.TIMEOUT)
            if not (offline and queue_on_network_error and config.is_safe):
                raise
            return await self._park(config)

    async def _park(self, config: RequestConfig) -> httpx.Response:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[httpx.Response] = loop.create_future()

        def resolve(response: httpx.Response) -> None:
            if not future.done():
                future.set_result(response)

        def reject(error: Exception) -> None:
            if not future.done():
                future.set_exception(error)

        request_id = self.retry_queue.enqueue(config, resolve, reject, replay=self._send)
        self.logger.info("[API] Request queued (%s): %s %s", request_id, config.method, config.url)

        def forget_if_abandoned(fut: asyncio.Future) -> None:
            if fut.cancelled():
                self.retry_queue.dequeue(request_id)

        future.add_done_callback(forget_if_abandoned)
        return await future

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def process_retry_queue(self) -> None:
        """Drain the retry queue; call when connectivity is restored.

        Entries queued by other clients sharing the queue are replayed through
        their own client, not this one.
        """
        if self.retry_queue.size == 0:
            return
        self.logger.info("[API] Processing retry queue (%d requests)", self.retry_queue.size)
        await self.retry_queue.process_queue(self._send)
        self.logger.info("[API] Retry queue processed")

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
