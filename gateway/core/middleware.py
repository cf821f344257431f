"""HTTP middleware: request correlation and access logging.

``request_id_middleware`` accepts an incoming X-Request-ID header (header
name configurable via LOG_REQUEST_ID_HEADER) or generates a UUID, keeps it
in a context variable for the duration of the request so every log record
carries it, and echoes it back with the total duration.

``access_log_middleware`` writes one ``http.request`` record per request,
at error level for 5xx, warning for 4xx and info otherwise.

Usage:
    app.middleware("http")(access_log_middleware)
    app.middleware("http")(request_id_middleware)   # registered last, runs first
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from gateway.core.logging import clear_request_id, set_request_id

logger = logging.getLogger("gateway.access")

DEFAULT_REQUEST_ID_HEADER = "X-Request-ID"


def _request_id_header(request: Request) -> str:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        return DEFAULT_REQUEST_ID_HEADER
    return settings.log.request_id_header


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a request id for the request lifetime and echo it in the response.

    Side Effects:
        - Sets request_id in contextvars (accessible via get_request_id())
        - Clears it after the response is produced
        - Adds the request id and X-Request-Duration-ms response headers
    """

    header_name = _request_id_header(request)
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def access_log_middleware(request: Request, call_next) -> Response:
    start = time.perf_counter()
    response: Response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000

    if response.status_code >= 500:
        level = logging.ERROR
    elif response.status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger.log(
        level,
        "http.request",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        },
    )
    return response
