import logging
from typing import Any

from rest_bridge.services.gateway import RestGateway
from rest_bridge.tools.base import ToolDefinition, ToolParameter
from rest_bridge.tools.builtin.common import (
    HEADERS_PARAMETER,
    PATH_PARAMETER,
    clean_headers,
    clean_path,
)

logger = logging.getLogger(__name__)


class ReplaceTool:
    """Replaces a resource on the REST backend (HTTP PUT)."""

    def __init__(self, gateway: RestGateway) -> None:
        self._gateway = gateway

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="replace",
            description=(
                "Replace an existing resource via the REST API (HTTP PUT). "
                "The body is sent as JSON; returns the decoded JSON response."
            ),
            parameters=[
                PATH_PARAMETER,
                ToolParameter(
                    name="body",
                    type="object",
                    description="Full JSON representation of the resource.",
                ),
                HEADERS_PARAMETER,
            ],
        )

    async def execute(self, **kwargs: Any) -> Any:
        path = clean_path(kwargs["path"])
        headers = clean_headers(kwargs.get("headers"))

        logger.info(f"Replacing resource at {path}")
        return await self._gateway.replace(path, body=kwargs["body"], headers=headers)
