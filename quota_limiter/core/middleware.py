"""Request correlation middleware for the quota host.

Limiter decisions are logged deep inside the request, so each request gets an
id (taken from the configured header or generated) that every log line and
error body carries. Requests the limiter turned away are also reported once at
the HTTP edge, by route template so that qualifiers in the path never reach
the logs.

Usage:
    app.middleware("http")(correlation_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response, status

from quota_limiter.core.config import settings
from quota_limiter.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

MAX_REQUEST_ID_LENGTH = 128

_REJECTION_EVENTS = {
    status.HTTP_429_TOO_MANY_REQUESTS: "http.quota_rejected",
    status.HTTP_503_SERVICE_UNAVAILABLE: "http.quota_store_unavailable",
}


def _resolve_request_id(request: Request, header_name: str) -> str:
    incoming = request.headers.get(header_name, "").strip()
    if incoming:
        return incoming[:MAX_REQUEST_ID_LENGTH]
    return uuid.uuid4().hex


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


async def correlation_middleware(request: Request, call_next) -> Response:
    """Bind a request id for the request and report limiter rejections.

    Returns:
        Response: The downstream response with the request id header and
            ``X-Request-Duration-ms`` set.
    """

    header_name = settings.log.request_id_header
    request_id = _resolve_request_id(request, header_name)
    set_request_id(request_id)
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        event = _REJECTION_EVENTS.get(response.status_code)
        if event is not None:
            logger.warning(
                event,
                extra={
                    "method": request.method,
                    "route": _route_template(request),
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers["X-Request-Duration-ms"] = f"{duration_ms:.2f}"
    return response
