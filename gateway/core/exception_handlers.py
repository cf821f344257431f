"""Global exception handlers for consistent error responses.

Every error leaves the gateway as::

    {"error": {"code": ..., "message": ..., "request_id": ..., "details": ...}}

Design:
- ValidationAppError / invalid request parameters -> 400
- RateLimitAppError -> 429 with Retry-After
- UpstreamAppError -> status chosen from how the upstream failed
- Starlette HTTPException (unknown route, wrong method) -> its own status
- Unexpected Exception -> generic 500 (safety net, no internals leaked)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.core.errors import (
    AppError,
    RateLimitAppError,
    UpstreamAppError,
    ValidationAppError,
)
from gateway.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": get_request_id(),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content={"error": content}, headers=headers)


def classify_upstream_error(exc: UpstreamAppError) -> tuple[int, str, str]:
    """Map an upstream failure to (HTTP status, error code, client message).

    - upstream 4xx -> same status; the request we forwarded was rejected
    - upstream 5xx -> 502
    - error status inside a 200 body -> 400
    - undecodable body -> 502
    - timeout -> 504
    - connection failure -> 503
    """
    if exc.reason == "timeout":
        return 504, "gateway_timeout", "Upstream service took too long to respond"
    if exc.reason == "connection":
        return 503, "service_unavailable", "Could not reach upstream service"
    if exc.reason == "api_status":
        return 400, "upstream_rejected", exc.message
    if exc.reason == "invalid_response":
        return 502, "upstream_invalid_response", "Upstream service returned an unreadable response"
    if exc.is_client_error:
        return exc.upstream_status or 400, "upstream_client_error", "Invalid request to upstream service"
    return 502, "upstream_unavailable", "Upstream service unavailable"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle AppError subclasses with a status chosen by type.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    headers: dict[str, str] | None = None
    code, message = exc.code, exc.message
    details: Any = exc.details

    if isinstance(exc, RateLimitAppError):
        status_code = 429
        headers = {"Retry-After": str(exc.retry_after_seconds)}
        settings = getattr(request.app.state, "settings", None)
        if settings is None or settings.rate_limit.include_headers:
            headers["X-RateLimit-Limit"] = str(exc.limit)
            headers["X-RateLimit-Remaining"] = str(exc.remaining)
            headers["X-RateLimit-Reset"] = str(exc.reset_at)
    elif isinstance(exc, UpstreamAppError):
        status_code, code, message = classify_upstream_error(exc)
        details = {"service": exc.service, **(exc.details or {})}
        if exc.upstream_status is not None:
            details["upstream_status"] = exc.upstream_status
    elif isinstance(exc, ValidationAppError):
        status_code = 400
    else:
        status_code = 500

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    return _error_response(status_code, code, message, details, headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer 400 (not FastAPI's 422) for missing or malformed parameters."""
    fields = [
        {
            "location": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    logger.info(
        "request_validation_failed",
        extra={"request_path": request.url.path, "fields": fields},
    )
    names = ", ".join(f["location"] for f in fields) or "request"
    return _error_response(
        400,
        "invalid_request",
        f"Invalid or missing parameters: {names}",
        {"fields": fields},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        code, message = "not_found", f"Route {request.method} {request.url.path} not found"
    else:
        code, message = "http_error", str(exc.detail)
    return _error_response(exc.status_code, code, message, headers=getattr(exc, "headers", None))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure for debugging while returning a generic message so no
    stack trace or internal detail reaches the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )
    return _error_response(
        500,
        "internal_server_error",
        "An unexpected error occurred. Please try again later.",
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
