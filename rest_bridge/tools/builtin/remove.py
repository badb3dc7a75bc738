import logging
from typing import Any

from rest_bridge.services.gateway import RestGateway
from rest_bridge.tools.base import ToolDefinition
from rest_bridge.tools.builtin.common import (
    HEADERS_PARAMETER,
    PATH_PARAMETER,
    clean_headers,
    clean_path,
)

logger = logging.getLogger(__name__)


class RemoveTool:
    """Deletes a resource on the REST backend (HTTP DELETE)."""

    def __init__(self, gateway: RestGateway) -> None:
        self._gateway = gateway

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="remove",
            description=(
                "Delete a resource via the REST API (HTTP DELETE). "
                "Returns the decoded JSON response, or null when the API sends no body."
            ),
            parameters=[
                PATH_PARAMETER,
                HEADERS_PARAMETER,
            ],
        )

    async def execute(self, **kwargs: Any) -> Any:
        path = clean_path(kwargs["path"])
        headers = clean_headers(kwargs.get("headers"))

        logger.info(f"Removing resource at {path}")
        return await self._gateway.remove(path, headers=headers)
