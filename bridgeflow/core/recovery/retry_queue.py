"""
Retry Queue

Holds idempotent requests that failed because the network was unreachable
and replays them when connectivity is restored. Entries live only in process
memory and are removed on success, after ``max_retries`` failed replays, or
when the queue is cleared.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ...config import settings
from .errors import (
    MaxRetriesExceededError,
    NonIdempotentRequestError,
    QueueClearedError,
    QueueFullError,
)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

RetryFn = Callable[["RequestConfig"], Awaitable[Any]]


@dataclass
class RequestConfig:
    """Everything needed to replay an HTTP request."""

    method: str
    url: str
    params: Optional[Dict[str, Any]] = None
    json: Optional[Any] = None
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None

    @property
    def is_safe(self) -> bool:
        return self.method.upper() in SAFE_METHODS


@dataclass
class QueuedRequest:
    id: str
    config: RequestConfig
    timestamp: float
    resolve: Callable[[Any], None]
    reject: Callable[[Exception], None]
    # Sender bound to the client that queued the request (its base URL and headers)
    replay: Optional[RetryFn] = None
    retry_count: int = 0


class RetryQueue:
    """Bounded FIFO of failed safe requests awaiting a connectivity-restored signal.

    Mutations happen only in synchronous sections of ``enqueue``, ``dequeue``,
    ``clear`` and between awaits in ``process_queue``; under a single event
    loop no lock is needed.
    """

    def __init__(
        self,
        *,
        max_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.max_size = settings.retry_queue_max_size if max_size is None else max_size
        self.max_retries = settings.retry_queue_max_retries if max_retries is None else max_retries
        if self.max_size < 1:
            raise ValueError("max_size must be at least 1")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.logger = logger or logging.getLogger(__name__)
        self._queue: Dict[str, QueuedRequest] = {}
        self._processing = False

    @property
    def size(self) -> int:
        return len(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._queue

    @property
    def is_processing(self) -> bool:
        return self._processing

    def enqueue(
        self,
        config: RequestConfig,
        resolve: Callable[[Any], None],
        reject: Callable[[Exception], None],
        replay: Optional[RetryFn] = None,
    ) -> str:
        """Add a request; evicts (and rejects) the oldest entry when full.

        ``replay`` sends the request the way its owner would; entries without
        one are replayed with the ``retry_fn`` given to ``process_queue``.
        """

        if not config.is_safe:
            raise NonIdempotentRequestError(config.method)

        request_id = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"

        if len(self._queue) >= self.max_size:
            oldest_id = next(iter(self._queue))
            oldest = self._queue.pop(oldest_id)
            self.logger.warning(
                "Retry queue full (%d); dropping %s %s",
                self.max_size,
                oldest.config.method.upper(),
                oldest.config.url,
            )
            oldest.reject(QueueFullError())

        self._queue[request_id] = QueuedRequest(
            id=request_id,
            config=config,
            timestamp=time.time(),
            resolve=resolve,
            reject=reject,
            replay=replay,
        )
        self.logger.debug("Queued %s %s as %s", config.method.upper(), config.url, request_id)
        return request_id

    def dequeue(self, request_id: str) -> None:
        self._queue.pop(request_id, None)

    def clear(self) -> None:
        """Reject every pending request and empty the queue."""
        pending = list(self._queue.values())
        self._queue.clear()
        for request in pending:
            request.reject(QueueClearedError())

    async def process_queue(self, retry_fn: RetryFn) -> None:
        """Replay queued requests oldest-first.

        Each entry goes through its own ``replay`` sender when it has one.

        A second call while a pass is running returns immediately.
        """
        if self._processing:
            return

        self._processing = True
        try:
            requests = sorted(self._queue.values(), key=lambda r: r.timestamp)
            for request in requests:
                if request.id not in self._queue:
                    continue

                try:
                    response = await (request.replay or retry_fn)(request.config)
                except Exception as exc:
                    request.retry_count += 1
                    if request.retry_count >= self.max_retries:
                        self.logger.warning(
                            "Giving up on %s %s after %d attempts: %s",
                            request.config.method.upper(),
                            request.config.url,
                            request.retry_count,
                            exc,
                        )
                        self._queue.pop(request.id, None)
                        request.reject(MaxRetriesExceededError(self.max_retries))
                    else:
                        self.logger.debug(
                            "Retry %d/%d failed for %s: %s",
                            request.retry_count,
                            self.max_retries,
                            request.id,
                            exc,
                        )
                    continue

                self._queue.pop(request.id, None)
                request.resolve(response)
        finally:
            self._processing = False

    def get_queued_requests(self) -> List[Dict[str, Any]]:
        """Snapshot of queued requests for debugging."""
        return [
            {
                "id": request.id,
                "url": request.config.url,
                "method": request.config.method.upper(),
                "retry_count": request.retry_count,
                "timestamp": request.timestamp,
            }
            for request in self._queue.values()
        ]


_retry_queue: Optional[RetryQueue] = None


def get_retry_queue() -> RetryQueue:
    """Process-wide queue shared by API clients that are not given one explicitly."""
    global _retry_queue
    if _retry_queue is None:
        _retry_queue = RetryQueue()
    return _retry_queue
