"""Access logging as a pure ASGI middleware."""

from __future__ import annotations

import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from tacitus.services.metrics import metrics
from tacitus.services.request_context import generate_request_id, request_id_var

logger = logging.getLogger("tacitus.access")


class RequestLoggingMiddleware:
    """Log ``method path status latency`` per request and tag the response
    with ``X-Request-ID`` and ``X-Response-Time-Ms``.

    Bodies are never logged: they carry the user's coordinates.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        rid = ""
        for name, value in scope.get("headers", []):
            if name == b"x-request-id":
                rid = value.decode("latin-1")
                break
        rid = rid or generate_request_id()
        token = request_id_var.set(rid)

        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", str(elapsed_ms).encode()))
                headers.append((b"x-request-id", rid.encode()))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.info(
                "%s %s %s %.2fms",
                scope.get("method", ""),
                scope.get("path", ""),
                status_code,
                elapsed_ms,
            )
            metrics.inc_request(status_code)
            metrics.record_latency(elapsed_ms)
            request_id_var.reset(token)
