"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment so no developer .env file or real Redis URL leaks
into the test run, and provides doubles for the two external systems the
gateway talks to: an async Redis client and the upstream HTTP APIs.
"""

import fnmatch
import os
import time
from typing import Any, Callable

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.pop("CACHE_REDIS_URL", None)

# Set default env vars that all tests might need
os.environ.setdefault("NEXTBUS_USERNAME", "test-user")
os.environ.setdefault("NEXTBUS_PASSWORD", "test-password")
os.environ.setdefault("LTA_API_KEY", "test-lta-key")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "test-google-key")
os.environ.setdefault("LOG_LEVEL", "warning")

import httpx
import pytest
from fastapi.testclient import TestClient

from gateway.adapters.cache.redis_store import RedisCacheStore
from gateway.adapters.upstream import build_upstream_clients
from gateway.core.app_factory import create_app
from gateway.core.config import (
    AppSettings,
    CacheSettings,
    GoogleSettings,
    LTASettings,
    LogSettings,
    NextBusSettings,
    RateLimitSettings,
    Settings,
)
from gateway.services.cache_service import CacheService


class FakeRedis:
    """Minimal in-memory stand-in for ``redis.asyncio.Redis``.

    Implements the commands the gateway issues (GET, SET EX, DELETE, SCAN,
    PING) and evaluates the window-increment script natively.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self.closed = False

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _live(self, key: str) -> tuple[str, float | None] | None:
        item = self._data.get(key)
        if item is None:
            return None
        _, expires_at_ms = item
        if expires_at_ms is not None and expires_at_ms <= self._now_ms():
            del self._data[key]
            return None
        return item

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        item = self._live(key)
        return item[0] if item else None

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        expires_at_ms = self._now_ms() + ex * 1000 if ex else None
        self._data[key] = (value, expires_at_ms)
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                removed += 1
        return removed

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        for key in list(self._data):
            if self._live(key) is None:
                continue
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def pttl(self, key: str) -> int:
        item = self._live(key)
        if item is None:
            return -2
        if item[1] is None:
            return -1
        return int(item[1] - self._now_ms())

    def register_script(self, script: str):
        async def run(keys: list[str], args: list[Any]) -> list[int]:
            key, window_ms = keys[0], int(args[0])
            item = self._live(key)
            count = int(item[0]) + 1 if item else 1
            expires_at_ms = item[1] if item else None
            if count == 1 or expires_at_ms is None:
                expires_at_ms = self._now_ms() + window_ms
            self._data[key] = (str(count), expires_at_ms)
            return [count, int(expires_at_ms - self._now_ms())]

        return run

    async def aclose(self) -> None:
        self.closed = True


class UpstreamStub:
    """Records upstream requests and answers them from a path-keyed table.

    A table value may be a JSON-serializable payload (answered with 200) or
    a callable taking the ``httpx.Request`` and returning an
    ``httpx.Response`` (or raising an httpx exception).
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, Any] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self.responses.get(request.url.path)
        if responder is None:
            return httpx.Response(404, json={"message": "no stub for path"})
        if callable(responder):
            return responder(request)
        return httpx.Response(200, json=responder)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_store(fake_redis: FakeRedis) -> RedisCacheStore:
    return RedisCacheStore(fake_redis)


@pytest.fixture
def upstream_stub() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture
def gateway_settings() -> Settings:
    """Settings pointing every upstream at a stubbed host."""
    return Settings(
        app=AppSettings(environment="testing", allowed_origins="*", validate_credentials=True),
        nextbus=NextBusSettings(
            api_url="https://nextbus.test/api", username="test-user", password="test-password"
        ),
        lta=LTASettings(api_url="https://lta.test/ltaodataservice", api_key="test-lta-key"),
        google=GoogleSettings(
            maps_api_key="test-google-key",
            routes_api_url="https://routes.test",
            places_api_url="https://maps.test/maps/api/place",
            directions_api_url="https://maps.test/maps/api/directions",
        ),
        cache=CacheSettings(redis_url=None),
        rate_limit=RateLimitSettings(),
        log=LogSettings(level="warning"),
    )


def build_test_app(settings: Settings, stub: UpstreamStub, cache: CacheService | None = None):
    return create_app(
        settings,
        cache=cache if cache is not None else CacheService(settings.cache),
        upstreams=build_upstream_clients(settings, transport=stub.transport),
    )


@pytest.fixture
def client(gateway_settings: Settings, upstream_stub: UpstreamStub):
    """Test client with the lifespan running (limiters, cache, upstreams built)."""
    app = build_test_app(gateway_settings, upstream_stub)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_client(upstream_stub: UpstreamStub):
    """Factory for started test clients with custom settings or cache."""
    started: list[TestClient] = []

    def _make(settings: Settings, cache: CacheService | None = None) -> TestClient:
        test_client = TestClient(build_test_app(settings, upstream_stub, cache))
        test_client.__enter__()
        started.append(test_client)
        return test_client

    yield _make
    for test_client in started:
        test_client.__exit__(None, None, None)
