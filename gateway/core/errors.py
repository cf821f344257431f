"""Application-level exception types.

Errors raised by adapters and services carry a stable code so the exception
handlers can map them to HTTP responses without inspecting messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    hint: str
    service: str
    upstream_status: int
    upstream_api_status: str
    retry_after: int
    route_group: str
    limit: int
    missing: list[str]
    fields: list[dict[str, Any]]
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input or configuration is invalid."""


UpstreamFailure = Literal[
    "http_status",
    "timeout",
    "connection",
    "invalid_response",
    "api_status",
]


@dataclass
class UpstreamAppError(AppError):
    """Raised when a call to an upstream API fails.

    ``reason`` keeps the failure class (status code returned, timeout,
    connection failure, undecodable body, or an error status inside an
    otherwise successful body) so the HTTP layer can pick the right status.
    """

    service: str = "upstream"
    reason: UpstreamFailure = "http_status"
    upstream_status: int | None = None

    @property
    def is_client_error(self) -> bool:
        return (
            self.reason == "http_status"
            and self.upstream_status is not None
            and 400 <= self.upstream_status < 500
        )


@dataclass
class RateLimitAppError(AppError):
    """Raised when a client exhausts its window for a route group."""

    retry_after_seconds: int = 1
    limit: int = 0
    remaining: int = 0
    reset_at: int = 0
