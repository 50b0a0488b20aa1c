"""CLI entry point for the OpenAPI MCP server."""

from __future__ import annotations

import asyncio
import logging

import uvicorn

from .config import get_settings
from .loader import LoadError
from .logging import configure_logging
from .server import build_server
from .versions import UnsupportedVersionError

logger = logging.getLogger(__name__)


async def _run() -> None:
    settings = get_settings()
    configure_logging(settings.adapter_log_level)

    try:
        mcp, app = await build_server(settings)
    except (LoadError, UnsupportedVersionError, ValueError) as exc:
        logger.error("Failed to configure MCP server: %s", exc)
        raise SystemExit(1) from exc

    transport = settings.adapter_transport.lower()
    if transport == "stdio":
        await mcp.run_stdio_async()
        return
    if not app:
        raise RuntimeError(f"Unsupported transport: {settings.adapter_transport}")

    logger.info("Starting MCP server with %s transport on %s:%s", transport, settings.adapter_host, settings.adapter_port)
    config = uvicorn.Config(app, host=settings.adapter_host, port=settings.adapter_port)
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
