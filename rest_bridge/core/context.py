import logging
from dataclasses import dataclass
from typing import Any

import httpx

from rest_bridge.config.schema import AppConfig
from rest_bridge.config.secrets import Secrets
from rest_bridge.core.cache import ResponseCache
from rest_bridge.core.dispatcher import Dispatcher
from rest_bridge.core.rate_limiter import RateLimiter
from rest_bridge.core.session import ProtocolSession
from rest_bridge.services.gateway import RestGateway
from rest_bridge.tools.builtin.create import CreateTool
from rest_bridge.tools.builtin.fetch import FetchTool
from rest_bridge.tools.builtin.remove import RemoveTool
from rest_bridge.tools.builtin.replace import ReplaceTool
from rest_bridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class BridgeContext:
    """Process-wide objects shared by every tool call."""

    config: AppConfig
    cache: ResponseCache
    limiter: RateLimiter
    gateway: RestGateway
    registry: ToolRegistry
    dispatcher: Dispatcher

    def new_session(self) -> ProtocolSession:
        return ProtocolSession(self.config.server, self.registry, self.dispatcher)

    async def __aenter__(self) -> "BridgeContext":
        await self.gateway.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.gateway.stop()


def build_context(
    config: AppConfig,
    secrets: Secrets | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BridgeContext:
    """Wire cache, limiter, gateway and the tool catalog together."""
    cache = ResponseCache(config.cache.ttl_seconds, max_entries=config.cache.max_entries)
    limiter = RateLimiter(
        config.rate_limit.max_concurrent,
        config.rate_limit.min_interval_seconds,
    )
    gateway = RestGateway(
        config.backend,
        config.retry,
        limiter,
        cache,
        secrets=secrets,
        transport=transport,
    )

    registry = ToolRegistry()
    registry.register(FetchTool(gateway))
    registry.register(CreateTool(gateway))
    registry.register(ReplaceTool(gateway))
    registry.register(RemoveTool(gateway))

    return BridgeContext(
        config=config,
        cache=cache,
        limiter=limiter,
        gateway=gateway,
        registry=registry,
        dispatcher=Dispatcher(registry),
    )
