import pytest

from rest_bridge.core.session import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    NOT_INITIALIZED,
    PROTOCOL_VERSION,
)
from rest_bridge.core.state import SessionState


def request(method: str, params: dict | None = None, request_id: int = 1) -> dict:
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def notification(method: str) -> dict:
    return {"jsonrpc": "2.0", "method": method}


@pytest.fixture
def session(context):
    return context.new_session()


async def handshake(session) -> dict:
    response = await session.handle(request("initialize", {
        "protocolVersion": PROTOCOL_VERSION,
        "clientInfo": {"name": "test-client", "version": "1.0"},
    }))
    assert await session.handle(notification("notifications/initialized")) is None
    return response


@pytest.mark.asyncio
async def test_initialize_handshake(session):
    assert session.state is SessionState.CREATED

    response = await handshake(session)

    assert response["id"] == 1
    result = response["result"]
    assert result["protocolVersion"] == PROTOCOL_VERSION
    assert result["capabilities"] == {"tools": {}}
    assert result["serverInfo"]["name"] == "rest-bridge"
    assert session.state is SessionState.READY
    assert session.client_info["name"] == "test-client"


@pytest.mark.asyncio
async def test_double_initialize_rejected(session):
    await handshake(session)
    response = await session.handle(request("initialize", {}, request_id=2))
    assert response["error"]["code"] == INVALID_REQUEST


@pytest.mark.asyncio
async def test_tools_before_initialize_rejected(session):
    response = await session.handle(request("tools/list"))
    assert response["error"]["code"] == NOT_INITIALIZED


@pytest.mark.asyncio
async def test_ping_always_answers(session):
    response = await session.handle(request("ping", request_id=9))
    assert response == {"jsonrpc": "2.0", "id": 9, "result": {}}


@pytest.mark.asyncio
async def test_tools_list(session):
    await handshake(session)
    response = await session.handle(request("tools/list", request_id=2))

    tools = response["result"]["tools"]
    assert [t["name"] for t in tools] == ["fetch", "create", "replace", "remove"]
    assert tools[0]["inputSchema"]["required"] == ["path"]


@pytest.mark.asyncio
async def test_tools_call_success(session, context, backend):
    backend.respond_json({"id": 1, "name": "Ann"})

    async with context:
        await handshake(session)
        response = await session.handle(request("tools/call", {
            "name": "fetch",
            "arguments": {"path": "/users"},
        }, request_id=3))

    assert response["id"] == 3
    assert response["result"] == {
        "content": [{"type": "text", "text": "{\n  \"id\": 1,\n  \"name\": \"Ann\"\n}"}],
        "isError": False,
    }


@pytest.mark.asyncio
async def test_tools_call_failure_is_result_not_error(session):
    await handshake(session)
    response = await session.handle(request("tools/call", {"name": "nope", "arguments": {}}))

    assert "error" not in response
    assert response["result"]["isError"] is True
    assert response["result"]["content"][0]["text"] == "Unknown tool: nope"


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [
    {},
    {"name": 5},
    {"name": "fetch", "arguments": ["/users"]},
])
async def test_tools_call_bad_params(session, params):
    await handshake(session)
    response = await session.handle(request("tools/call", params))
    assert response["error"]["code"] == INVALID_PARAMS


@pytest.mark.asyncio
async def test_unknown_method(session):
    response = await session.handle(request("resources/list"))
    assert response["error"]["code"] == METHOD_NOT_FOUND


@pytest.mark.asyncio
async def test_unknown_notification_ignored(session):
    assert await session.handle(notification("notifications/cancelled")) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("message", [
    [],
    {"id": 1, "method": "ping"},
    {"jsonrpc": "2.0", "id": 1},
])
async def test_invalid_messages(session, message):
    response = await session.handle(message)
    assert response["error"]["code"] == INVALID_REQUEST


@pytest.mark.asyncio
async def test_close(session):
    await handshake(session)
    session.close()
    assert session.state is SessionState.CLOSED

    response = await session.handle(request("tools/list"))
    assert response["error"]["code"] == NOT_INITIALIZED
