"""
Per-request structlog context for the bridge API.

Every request gets a request id (echoed back in ``x-request-id``). Order
lookups also bind ``order_id``, and ``network``/``direction`` query params
are bound when present, so provider and retry-queue logs emitted while
serving the request can be correlated with it.
"""

import re
import time
import uuid
from typing import Dict

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("bridgeflow.http")

ORDER_PATH = re.compile(r"^/bridge/orders/(?P<order_id>[^/]+)$")
QUIET_PATHS = frozenset({"/healthz", "/favicon.ico"})
BOUND_QUERY_PARAMS = ("network", "direction")


def request_context(request: Request) -> Dict[str, str]:
    """Log fields derived from the request path and query string."""
    context: Dict[str, str] = {}
    match = ORDER_PATH.match(request.url.path)
    if match:
        context["order_id"] = match.group("order_id")
    for name in BOUND_QUERY_PARAMS:
        value = request.query_params.get(name)
        if value:
            context[name] = value
    return context


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind request context and emit one ``http_request`` event per call."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
        context = request_context(request)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, **context)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-request-id"] = request_id
            return response
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
            if status_code >= 500:
                level = "error"
            elif status_code >= 400:
                level = "warning"
            elif request.url.path in QUIET_PATHS:
                level = "debug"
            else:
                level = "info"
            getattr(logger, level)(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status_code,
                duration_ms=elapsed_ms,
            )
