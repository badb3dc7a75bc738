import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import httpx

from rest_bridge.config.schema import BackendConfig, RetryConfig
from rest_bridge.config.secrets import Secrets
from rest_bridge.core.cache import ResponseCache, fingerprint, normalize_path
from rest_bridge.core.errors import BackendError, DecodeError, TransportError
from rest_bridge.core.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

READ_VERBS = frozenset({"GET"})
WRITE_VERBS = frozenset({"POST", "PUT", "DELETE"})


@dataclass(frozen=True)
class RestRequest:
    verb: str
    path: str
    query: Mapping[str, Any] | None = None
    body: Any = None
    headers: Mapping[str, str] | None = None
    timeout: float | None = None


def parent_collection(path: str) -> str:
    """'/users/1' -> '/users'; '/users' -> '/users'."""
    path = normalize_path(path)
    head, _, _ = path.rpartition("/")
    return head or path


class RestGateway:
    """HTTP client for one REST backend with caching, rate limiting and retries."""

    def __init__(
        self,
        config: BackendConfig,
        retry: RetryConfig,
        limiter: RateLimiter,
        cache: ResponseCache,
        secrets: Secrets | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if retry.max_attempts < 1:
            raise ValueError("retry.max_attempts must be at least 1")
        self._config = config
        self._retry = retry
        self._limiter = limiter
        self._cache = cache
        self._secrets = secrets or Secrets()
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        if self._client is not None:
            return
        _check_base_url(self._config.base_url)
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            headers=self._default_headers(),
            timeout=self._config.timeout_seconds,
            transport=self._transport,
        )
        logger.info(f"REST gateway connected to {self._config.base_url}")

    async def stop(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        logger.info("REST gateway closed")

    async def __aenter__(self) -> "RestGateway":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    def _default_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self._config.user_agent,
        }
        if self._secrets.has_api_key():
            scheme = self._config.auth_scheme
            token = self._secrets.api_key
            headers[self._config.auth_header] = f"{scheme} {token}" if scheme else token
        return headers

    async def fetch(
        self,
        path: str,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        return await self.execute(RestRequest("GET", path, query=query, headers=headers, timeout=timeout))

    async def create(
        self,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        return await self.execute(RestRequest("POST", path, body=body, headers=headers, timeout=timeout))

    async def replace(
        self,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        return await self.execute(RestRequest("PUT", path, body=body, headers=headers, timeout=timeout))

    async def remove(
        self,
        path: str,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        return await self.execute(RestRequest("DELETE", path, headers=headers, timeout=timeout))

    async def execute(self, request: RestRequest) -> Any:
        """Run a request through cache, limiter and retry policy. Returns the decoded body."""
        verb = request.verb.upper()
        if verb in READ_VERBS:
            key = fingerprint(verb, request.path, request.query)
            cached = self._cache.get(key)
            if cached is not None:
                logger.info(f"Cache hit: {key}")
                return cached
            generation = self._cache.generation
            value = await self._send_with_retry(verb, request)
            if value is not None:
                self._cache.put(key, value, request.path, generation=generation)
            return value

        if verb not in WRITE_VERBS:
            raise ValueError(f"Unsupported HTTP verb: {request.verb}")

        value = await self._send_with_retry(verb, request)
        collection = parent_collection(request.path)
        self._cache.invalidate_prefix(collection)
        return value

    async def _send_with_retry(self, verb: str, request: RestRequest) -> Any:
        if self._client is None:
            raise TransportError("REST gateway is not started")
        headers = self._request_headers(request.headers)
        attempt = 1
        while True:
            try:
                return await self._send(verb, request, headers)
            except (TransportError, BackendError) as e:
                if attempt >= self._retry.max_attempts or not self._is_retryable(e):
                    raise
                delay = self._backoff(attempt, e)
                logger.warning(
                    f"{verb} {request.path} failed (attempt {attempt}/{self._retry.max_attempts}): {e}. "
                    f"Retrying in {delay:.2f}s"
                )
                await self._sleep(delay)
                attempt += 1

    def _is_retryable(self, error: Exception) -> bool:
        if isinstance(error, TransportError):
            return True
        return isinstance(error, BackendError) and error.status_code in self._retry.retryable_statuses

    def _backoff(self, attempt: int, error: Exception) -> float:
        delay = self._retry.base_delay_seconds * 2 ** (attempt - 1)
        if isinstance(error, BackendError) and error.retry_after is not None:
            delay = error.retry_after
        return min(self._retry.max_delay_seconds, delay)

    def _request_headers(self, headers: Mapping[str, str] | None) -> dict[str, str]:
        """Caller headers minus the ones the gateway owns (auth and Content-Type)."""
        if not headers:
            return {}
        owned = {self._config.auth_header.lower(), "content-type"}
        kept: dict[str, str] = {}
        for name, value in headers.items():
            if name.lower() in owned:
                logger.warning(f"Ignoring caller-supplied header '{name}'")
                continue
            kept[name] = value
        return kept

    async def _send(self, verb: str, request: RestRequest, headers: dict[str, str]) -> Any:
        kwargs: dict[str, Any] = {}
        if request.query:
            kwargs["params"] = dict(request.query)
        if headers:
            kwargs["headers"] = headers
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout
        if verb in ("POST", "PUT") and request.body is not None:
            kwargs["content"] = json.dumps(request.body).encode("utf-8")

        async with self._limiter.admit():
            logger.debug(f"{verb} {request.path}")
            try:
                response = await self._client.request(verb, request.path, **kwargs)
            except httpx.TimeoutException as e:
                raise TransportError(f"{verb} {request.path} timed out") from e
            except httpx.TransportError as e:
                raise TransportError(f"{verb} {request.path} failed: {e}") from e

        if not response.is_success:
            raise BackendError(
                response.status_code,
                body=self._decode_lenient(response),
                reason=response.reason_phrase,
                retry_after=_parse_retry_after(response),
            )

        return self._decode(response)

    def _decode(self, response: httpx.Response) -> Any:
        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            snippet = response.text[:200]
            raise DecodeError(
                f"Response from {response.request.method} {response.request.url.path} "
                f"is not valid JSON: {snippet!r}"
            ) from e

    @staticmethod
    def _decode_lenient(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text


def _check_base_url(base_url: str) -> None:
    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(
            f"backend.base_url must be a full http:// or https:// URL, got {base_url!r}"
        )


def _parse_retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        # HTTP-date form is not honored
        return None
