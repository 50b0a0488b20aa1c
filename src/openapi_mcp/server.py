"""MCP server setup: register converted OpenAPI tools with FastMCP."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from fastmcp import FastMCP
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent

from .config import Settings
from .tool_registry import RegisteredTool, ToolRegistry

logger = logging.getLogger(__name__)


class OpenAPITool(Tool):
    """FastMCP tool whose input schema comes from a compiled OpenAPI operation."""

    handler: Callable[..., Any]

    @classmethod
    def from_registered(cls, tool: RegisteredTool) -> "OpenAPITool":
        definition = tool.definition
        return cls(
            name=definition.name,
            description=definition.description,
            parameters=definition.parameter_schema.to_json_schema(definition.arena),
            handler=tool.handler,
        )

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        result = await self.handler(arguments)
        return ToolResult(
            content=[TextContent(type="text", text=item["text"]) for item in result["content"]]
        )


async def build_server(
    settings: Settings, registry: Optional[ToolRegistry] = None
) -> tuple[FastMCP, object | None]:
    registry = registry or ToolRegistry(settings)

    mcp = FastMCP(settings.service_name, instructions=_instructions())
    app = _get_http_app(mcp, settings)
    _attach_healthcheck(app)

    tools = await registry.load_tools()
    for tool in tools:
        mcp.add_tool(OpenAPITool.from_registered(tool))
        logger.info("Registered tool: %s", tool.name)

    return mcp, app


def _attach_healthcheck(app) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return

    async def healthcheck(_request):  # type: ignore[no-untyped-def]
        from starlette.responses import JSONResponse

        return JSONResponse({"status": "ok"})

    app.add_route("/health", healthcheck, methods=["GET"])


def _instructions() -> str:
    return (
        "Tools generated from an OpenAPI description. "
        "Each tool calls one HTTP operation of the described API and returns its JSON response."
    )


def _get_http_app(mcp: FastMCP, settings: Settings):  # type: ignore[no-untyped-def]
    transport = settings.adapter_transport.lower()
    if transport in {"http"}:
        app = mcp.http_app(transport="http", stateless_http=True, json_response=True)
        _attach_cors(app)
        return app
    if transport in {"streamable-http", "streamablehttp", "streamable"}:
        app = mcp.http_app(
            transport="streamable-http", stateless_http=True, json_response=True
        )
        _attach_cors(app)
        return app
    if transport in {"sse"}:
        app = mcp.http_app(transport="sse")
        _attach_cors(app)
        return app
    return None


def _attach_cors(app) -> None:  # type: ignore[no-untyped-def]
    from starlette.middleware.cors import CORSMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
