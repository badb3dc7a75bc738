import json
import logging
from typing import Any

from rest_bridge.core.errors import BridgeError, UnknownToolError
from rest_bridge.tools.base import ToolCall, ToolDefinition, ToolResult
from rest_bridge.tools.registry import ToolRegistry
from rest_bridge.tools.validation import validate_arguments

logger = logging.getLogger(__name__)


def render_value(value: Any) -> str:
    """Pretty-print a decoded response for the result envelope."""
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


class Dispatcher:
    """Validates tool calls, runs the matching handler and wraps every outcome in a ToolResult.

    Failures never escape ``dispatch``: unknown tools, invalid arguments and
    handler errors all come back as results with ``is_error`` set.
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    def list_tools(self) -> list[ToolDefinition]:
        return self._registry.list_tools()

    async def dispatch(self, call: ToolCall) -> ToolResult:
        tool = self._registry.get(call.name)
        if tool is None:
            error = UnknownToolError(call.name)
            logger.warning(str(error))
            return ToolResult.error(str(error))

        try:
            arguments = validate_arguments(tool.definition, call.arguments)
            logger.info(f"Calling tool '{call.name}' with args: {arguments}")
            value = await tool.execute(**arguments)
        except BridgeError as e:
            logger.warning(f"Tool '{call.name}' failed: {e}")
            return ToolResult.error(str(e))
        except Exception as e:
            logger.exception(f"Tool '{call.name}' raised unexpected error")
            return ToolResult.error(f"Error executing tool '{call.name}': {e}")

        logger.info(f"Tool '{call.name}' succeeded")
        return ToolResult.success(render_value(value))
