"""
maui_care.observability.middleware

HTTP middleware for request-scoped logging context.

Responsibilities:
- Generate/propagate request IDs.
- Bind request metadata into structlog contextvars.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from maui_care.observability.logging import get_logger

log = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Ensures every request has a request id
    - Binds request-scoped contextvars for structured logs
    - Emits one access line per request with its duration
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            log.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        finally:
            # Avoid leaking context across requests under async concurrency.
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response


# --- Module Notes -----------------------------------------------------------
# `CareApiClient` forwards its own x-request-id so client and service log lines join up.
