import logging
from typing import Any

from rest_bridge.tools.base import Tool, ToolDefinition

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry of bridge tools with MCP schema conversion."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def register(self, tool: Tool) -> None:
        """Register a tool. Raises ValueError if name already taken."""
        name = tool.definition.name
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        self._tools[name] = tool
        logger.info(f"Registered tool: {name}")

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_tools(self) -> list[ToolDefinition]:
        return [t.definition for t in self._tools.values()]

    def to_mcp_tools(self) -> list[dict[str, Any]]:
        """Convert all tools to the tools/list wire format."""
        result: list[dict[str, Any]] = []
        for defn in self.list_tools():
            properties: dict[str, Any] = {}
            required: list[str] = []

            for param in defn.parameters:
                prop: dict[str, Any] = {
                    "type": param.type,
                    "description": param.description,
                }
                if param.enum:
                    prop["enum"] = param.enum
                properties[param.name] = prop
                if param.required:
                    required.append(param.name)

            result.append({
                "name": defn.name,
                "description": defn.description,
                "inputSchema": {
                    "type": "object",
                    "properties": properties,
                    "required": required,
                },
            })
        return result
