import asyncio
import json

import httpx
import pytest

from rest_bridge.core.session import INVALID_REQUEST, PARSE_ERROR
from rest_bridge.core.state import SessionState
from rest_bridge.core.stdio import StdioServer


def feed(lines: list[str]) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data((line + "\n").encode())
    reader.feed_eof()
    return reader


def rpc(method: str, params: dict | None = None, request_id: int | None = None) -> str:
    message: dict = {"jsonrpc": "2.0", "method": method}
    if request_id is not None:
        message["id"] = request_id
    if params is not None:
        message["params"] = params
    return json.dumps(message)


HANDSHAKE = [
    rpc("initialize", {"clientInfo": {"name": "t"}}, request_id=1),
    rpc("notifications/initialized"),
]


@pytest.mark.asyncio
async def test_serves_until_eof(context, backend):
    backend.respond_json({"id": 1})
    output: list[str] = []
    session = context.new_session()
    server = StdioServer(
        session,
        reader=feed(HANDSHAKE + [
            "",
            rpc("tools/list", request_id=2),
            rpc("tools/call", {"name": "fetch", "arguments": {"path": "/users/1"}}, request_id=3),
        ]),
        write=output.append,
    )

    async with context:
        await server.serve()

    responses = {r["id"]: r for r in map(json.loads, output)}
    assert set(responses) == {1, 2, 3}
    assert len(responses[2]["result"]["tools"]) == 4
    assert responses[3]["result"]["isError"] is False
    assert all(line.endswith("\n") for line in output)
    assert session.state is SessionState.CLOSED


@pytest.mark.asyncio
async def test_parse_error(context):
    output: list[str] = []
    server = StdioServer(context.new_session(), reader=feed(["{not json"]), write=output.append)

    await server.serve()

    response = json.loads(output[0])
    assert response["id"] is None
    assert response["error"]["code"] == PARSE_ERROR


@pytest.mark.asyncio
async def test_tool_calls_run_concurrently(context, backend, config):
    backend.delay = 0.02
    backend.respond(lambda request: httpx.Response(200, json={"path": request.url.path}))
    calls = [
        rpc("tools/call", {"name": "fetch", "arguments": {"path": f"/items/{i}"}}, request_id=10 + i)
        for i in range(4)
    ]
    output: list[str] = []
    server = StdioServer(context.new_session(), reader=feed(HANDSHAKE + calls), write=output.append)

    async with context:
        await server.serve()

    results = [json.loads(line) for line in output]
    assert len(results) == 5
    assert backend.max_in_flight == config.rate_limit.max_concurrent


@pytest.mark.asyncio
async def test_oversized_line_does_not_end_session(context):
    reader = asyncio.StreamReader(limit=64)
    reader.feed_data(("x" * 200 + "\n").encode())
    reader.feed_data((rpc("ping", request_id=7) + "\n").encode())
    reader.feed_eof()
    output: list[str] = []
    server = StdioServer(context.new_session(), reader=reader, write=output.append)

    await server.serve()

    first, second = (json.loads(line) for line in output)
    assert first["error"]["code"] == INVALID_REQUEST
    assert second == {"jsonrpc": "2.0", "id": 7, "result": {}}
