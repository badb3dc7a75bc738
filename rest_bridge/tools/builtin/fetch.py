import logging
from typing import Any

from rest_bridge.services.gateway import RestGateway
from rest_bridge.tools.base import ToolDefinition, ToolParameter
from rest_bridge.tools.builtin.common import (
    HEADERS_PARAMETER,
    PATH_PARAMETER,
    clean_headers,
    clean_path,
    clean_query,
)

logger = logging.getLogger(__name__)


class FetchTool:
    """
    Reads a resource from the REST backend (HTTP GET). Results are cached.
    """

    def __init__(self, gateway: RestGateway) -> None:
        self._gateway = gateway

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="fetch",
            description=(
                "Read a resource or collection from the REST API (HTTP GET). "
                "Returns the decoded JSON response."
            ),
            parameters=[
                PATH_PARAMETER,
                ToolParameter(
                    name="query",
                    type="object",
                    description="Query string parameters (e.g., {\"page\": 2}).",
                    required=False,
                ),
                HEADERS_PARAMETER,
            ],
        )

    async def execute(self, **kwargs: Any) -> Any:
        path = clean_path(kwargs["path"])
        query = clean_query(kwargs.get("query"))
        headers = clean_headers(kwargs.get("headers"))

        logger.info(f"Fetching {path}")
        return await self._gateway.fetch(path, query=query, headers=headers)
