"""Shared HTTP client for upstream APIs.

Each upstream gets one long-lived ``httpx.AsyncClient`` carrying its base
URL, credentials and timeout. Failures are converted to ``UpstreamAppError``
so the HTTP layer can tell a rejected request (4xx) from an unhealthy
upstream (5xx), a timeout or a connection failure.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from gateway.core.errors import UpstreamAppError

logger = logging.getLogger(__name__)

USER_AGENT = "NUSNextBus-Gateway/1.0"

# Upstream error bodies are logged truncated
_BODY_PREVIEW_CHARS = 500


class UpstreamClient:
    """JSON-over-HTTP client for one upstream service.

    Attributes:
        name: Service name used in logs and error details.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            name: Service name (e.g. ``"nextbus"``).
            base_url: Base URL all request paths are relative to.
            timeout_seconds: Per-request timeout.
            headers: Headers sent with every request (API keys included).
            auth: Credentials for HTTP auth (basic auth tuple or httpx.Auth).
            params: Query parameters sent with every request.
            transport: Custom transport, used by tests to stub the upstream.
        """
        self.name = name
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"User-Agent": USER_AGENT, **(headers or {})},
            auth=auth,
            params=params,
            transport=transport,
            event_hooks={
                "request": [self._log_request],
                "response": [self._log_response],
            },
        )

    async def _log_request(self, request: httpx.Request) -> None:
        logger.debug(
            "upstream.request",
            extra={"service": self.name, "method": request.method, "path": request.url.path},
        )

    async def _log_response(self, response: httpx.Response) -> None:
        logger.debug(
            "upstream.response",
            extra={
                "service": self.name,
                "path": response.request.url.path,
                "status_code": response.status_code,
            },
        )

    async def get_json(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self._request("GET", path, params=params, headers=headers)

    async def post_json(
        self,
        path: str,
        body: Any,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self._request("POST", path, json=body, headers=headers)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and decode its JSON body.

        Raises:
            UpstreamAppError: On timeout, transport failure, non-2xx status or
                a body that is not JSON.
        """
        params = kwargs.get("params")
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.error(
                "upstream.timeout",
                extra={"service": self.name, "path": path, "error_type": type(exc).__name__},
            )
            raise UpstreamAppError(
                code="upstream_timeout",
                message=f"{self.name} did not respond in time",
                service=self.name,
                reason="timeout",
            ) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.error(
                "upstream.error_response",
                extra={
                    "service": self.name,
                    "path": path,
                    "status_code": status_code,
                    "body_preview": exc.response.text[:_BODY_PREVIEW_CHARS],
                },
            )
            raise UpstreamAppError(
                code="upstream_http_error",
                message=f"{self.name} responded with HTTP {status_code}",
                service=self.name,
                reason="http_status",
                upstream_status=status_code,
            ) from exc
        except httpx.TransportError as exc:
            logger.error(
                "upstream.unreachable",
                extra={
                    "service": self.name,
                    "path": path,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise UpstreamAppError(
                code="upstream_unreachable",
                message=f"Could not reach {self.name}",
                service=self.name,
                reason="connection",
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            logger.error(
                "upstream.invalid_json",
                extra={"service": self.name, "path": path, "status_code": response.status_code},
            )
            raise UpstreamAppError(
                code="upstream_invalid_json",
                message=f"{self.name} returned a non-JSON body",
                service=self.name,
                reason="invalid_response",
                upstream_status=response.status_code,
            ) from exc

    async def aclose(self) -> None:
        await self._client.aclose()
