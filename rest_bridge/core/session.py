import logging
from typing import Any

from rest_bridge.config.schema import ServerConfig
from rest_bridge.core.dispatcher import Dispatcher
from rest_bridge.core.state import SERVING_STATES, SessionState, validate_transition
from rest_bridge.tools.base import ToolCall
from rest_bridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
NOT_INITIALIZED = -32002


class ProtocolError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def error_response(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": code, "message": message},
    }


class ProtocolSession:
    """JSON-RPC session: lifecycle handshake plus tools/list and tools/call."""

    def __init__(self, config: ServerConfig, registry: ToolRegistry, dispatcher: Dispatcher) -> None:
        self._config = config
        self._registry = registry
        self._dispatcher = dispatcher
        self._state = SessionState.CREATED
        self._client_info: dict[str, Any] = {}

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def client_info(self) -> dict[str, Any]:
        return self._client_info

    def close(self) -> None:
        if self._state is not SessionState.CLOSED:
            self._transition_to(SessionState.CLOSED)

    def _transition_to(self, target: SessionState) -> None:
        validate_transition(self._state, target)
        logger.info(f"Session: {self._state.name} -> {target.name}")
        self._state = target

    async def handle(self, message: Any) -> dict[str, Any] | None:
        """Handle one decoded message. Returns the response, or None for notifications."""
        if not isinstance(message, dict) or message.get("jsonrpc") != "2.0":
            return error_response(None, INVALID_REQUEST, "Invalid JSON-RPC 2.0 message")

        method = message.get("method")
        if not isinstance(method, str):
            return error_response(message.get("id"), INVALID_REQUEST, "Missing method")

        is_notification = "id" not in message
        request_id = message.get("id")
        params = message.get("params") or {}

        try:
            if not isinstance(params, dict):
                raise ProtocolError(INVALID_PARAMS, "params must be an object")
            result = await self._route(method, params)
        except ProtocolError as e:
            logger.warning(f"Request '{method}' rejected: {e.message}")
            if is_notification:
                return None
            return error_response(request_id, e.code, e.message)

        if is_notification:
            return None
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    async def _route(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        match method:
            case "initialize":
                return self._initialize(params)
            case "notifications/initialized":
                if self._state is SessionState.INITIALIZING:
                    self._transition_to(SessionState.READY)
                return {}
            case "ping":
                return {}
            case "tools/list":
                self._require_serving()
                return {"tools": self._registry.to_mcp_tools()}
            case "tools/call":
                self._require_serving()
                result = await self._dispatcher.dispatch(self._parse_call(params))
                return result.to_dict()
            case _:
                if method.startswith("notifications/"):
                    return {}
                raise ProtocolError(METHOD_NOT_FOUND, f"Method not found: {method}")

    def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        if self._state is not SessionState.CREATED:
            raise ProtocolError(INVALID_REQUEST, "Session already initialized")
        self._client_info = params.get("clientInfo") or {}
        self._transition_to(SessionState.INITIALIZING)
        logger.info(f"Client connected: {self._client_info}")
        return {
            "protocolVersion": params.get("protocolVersion") or PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": self._config.name, "version": self._config.version},
        }

    def _require_serving(self) -> None:
        if self._state not in SERVING_STATES:
            raise ProtocolError(NOT_INITIALIZED, f"Session not initialized (state {self._state.name})")

    @staticmethod
    def _parse_call(params: dict[str, Any]) -> ToolCall:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise ProtocolError(INVALID_PARAMS, "tools/call requires a string 'name'")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ProtocolError(INVALID_PARAMS, "tools/call 'arguments' must be an object")
        return ToolCall(name=name, arguments=arguments)
