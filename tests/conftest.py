import asyncio
import inspect
import json
from collections.abc import Callable

import httpx
import pytest

from rest_bridge.config.schema import (
    AppConfig,
    BackendConfig,
    CacheConfig,
    LoggingConfig,
    RateLimitConfig,
    RetryConfig,
)
from rest_bridge.config.secrets import Secrets
from rest_bridge.core.context import BridgeContext, build_context

BASE_URL = "http://api.test/v1"


class StubBackend:
    """Async handler for httpx.MockTransport that records calls and concurrency.

    Handlers may be plain functions or coroutines (to hold a response open).
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.delay = 0.0
        self._handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={})
        )

    def respond(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._handler = handler

    def respond_json(self, payload, status_code: int = 200) -> None:
        self._handler = lambda request: httpx.Response(status_code, json=payload)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            response = self._handler(request)
            if inspect.isawaitable(response):
                response = await response
            return response
        finally:
            self.in_flight -= 1


def echo_body(status_code: int = 201) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=json.loads(request.content))
    return handler


@pytest.fixture
def backend():
    return StubBackend()


@pytest.fixture
def config():
    return AppConfig(
        backend=BackendConfig(base_url=BASE_URL, timeout_seconds=5.0),
        retry=RetryConfig(max_attempts=3, base_delay_seconds=0.0, max_delay_seconds=0.0),
        rate_limit=RateLimitConfig(max_concurrent=2, min_interval_seconds=0.0),
        cache=CacheConfig(ttl_seconds=60.0, max_entries=100),
        logging=LoggingConfig(file=None),
    )


@pytest.fixture
def context(config, backend) -> BridgeContext:
    return build_context(config, Secrets(api_key="test-key"), transport=backend.transport())
