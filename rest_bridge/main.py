import argparse
import asyncio
import json
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path

from rest_bridge.config.loader import load_config
from rest_bridge.config.secrets import load_secrets
from rest_bridge.core.context import build_context
from rest_bridge.core.stdio import StdioServer
from rest_bridge.tools.base import ToolCall
from rest_bridge.util.logging import setup_logging

logger = logging.getLogger(__name__)


async def main(args: argparse.Namespace) -> int:
    config = load_config(config_path=Path(args.config), env_path=Path(args.env))
    if args.base_url:
        config = replace(config, backend=replace(config.backend, base_url=args.base_url))
    setup_logging(config.logging)

    logger.info("Starting REST bridge")

    try:
        context = build_context(config, load_secrets(Path(args.env)))
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    # Exit early for catalog listing; no backend needed
    if args.list_tools:
        print(json.dumps(context.registry.to_mcp_tools(), indent=2))
        return 0

    try:
        await context.gateway.start()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    async with context:
        # Headless single call
        if args.call:
            try:
                arguments = json.loads(args.args)
            except ValueError as e:
                logger.error(f"--args is not valid JSON: {e}")
                return 2
            if not isinstance(arguments, dict):
                logger.error("--args must be a JSON object")
                return 2
            result = await context.dispatcher.dispatch(ToolCall(name=args.call, arguments=arguments))
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            return 1 if result.is_error else 0

        server = StdioServer(context.new_session())
        serve_task = asyncio.create_task(server.serve())

        # Graceful shutdown on SIGINT/SIGTERM
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, serve_task.cancel)

        try:
            await serve_task
        except asyncio.CancelledError:
            logger.info("Shutdown requested")
        except Exception:
            logger.exception("Fatal error")
            return 1
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Expose a REST API as JSON-RPC tools over stdio")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML config file")
    parser.add_argument("--env", default=".env", help="Path to the .env file")
    parser.add_argument("--base-url", help="Override backend.base_url")
    parser.add_argument("--list-tools", action="store_true", help="Print the tool catalog and exit")
    parser.add_argument("--call", metavar="TOOL", help="Run a single tool call and print the result")
    parser.add_argument("--args", default="{}", help="JSON object of arguments for --call")
    return parser.parse_args(argv)


def run() -> None:
    sys.exit(asyncio.run(main(parse_args())))


if __name__ == "__main__":
    run()
