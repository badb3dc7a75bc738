import asyncio
import json
import logging
import sys
from collections.abc import Callable
from typing import Any

from rest_bridge.core.session import INVALID_REQUEST, PARSE_ERROR, ProtocolSession, error_response

logger = logging.getLogger(__name__)

MAX_LINE_BYTES = 16 * 1024 * 1024
INTERNAL_ERROR = -32603


def _write_stdout(line: str) -> None:
    sys.stdout.write(line)
    sys.stdout.flush()


async def open_stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=MAX_LINE_BYTES)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


class StdioServer:
    """Newline-delimited JSON-RPC over a byte stream (stdin/stdout by default).

    Tool calls run as separate tasks so a slow backend request does not block
    later messages. Everything else is handled in arrival order.
    """

    def __init__(
        self,
        session: ProtocolSession,
        reader: asyncio.StreamReader | None = None,
        write: Callable[[str], None] = _write_stdout,
    ) -> None:
        self._session = session
        self._reader = reader
        self._write = write
        self._write_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    async def serve(self) -> None:
        """Serve until the input stream closes, then wait for in-flight calls."""
        reader = self._reader or await open_stdin_reader()
        logger.info("Serving JSON-RPC on stdio")
        try:
            while True:
                try:
                    line = await reader.readline()
                except ValueError as e:
                    # Over the reader limit; the line is discarded
                    logger.warning(f"Dropped oversized message: {e}")
                    await self._send(error_response(None, INVALID_REQUEST, "Message too large"))
                    continue
                if not line:
                    break
                line = line.strip()
                if not line:
                    continue
                await self._receive(line)
        finally:
            if self._tasks:
                logger.info(f"Waiting for {len(self._tasks)} in-flight tool calls")
                await asyncio.gather(*self._tasks, return_exceptions=True)
            self._session.close()
            logger.info("Input closed, session ended")

    async def _receive(self, line: bytes) -> None:
        try:
            message = json.loads(line)
        except ValueError:
            logger.warning(f"Unparseable message: {line[:200]!r}")
            await self._send(error_response(None, PARSE_ERROR, "Parse error"))
            return

        if isinstance(message, dict) and message.get("method") == "tools/call":
            task = asyncio.create_task(self._handle(message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            await self._handle(message)

    async def _handle(self, message: Any) -> None:
        try:
            response = await self._session.handle(message)
        except Exception:
            logger.exception("Unhandled error while processing message")
            request_id = message.get("id") if isinstance(message, dict) else None
            response = error_response(request_id, INTERNAL_ERROR, "Internal error")
        if response is not None:
            await self._send(response)

    async def _send(self, response: dict[str, Any]) -> None:
        line = json.dumps(response, ensure_ascii=False) + "\n"
        async with self._write_lock:
            self._write(line)
