"""MCP Server wiring — list_tools, call_tool, and stdio entry point."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from reproto_ide.config import get_settings
from reproto_ide.logging_setup import configure_logging

from .tools import TOOL_DEFINITIONS, dispatch

logger = logging.getLogger(__name__)

# ── Server instance ───────────────────────────────────────────────────────

server = Server("reproto")


@server.list_tools()
async def list_tools() -> list[Tool]:
    """Declare all available tools."""
    return [Tool(**defn) for defn in TOOL_DEFINITIONS]


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool invocations against the shared build coordinator."""
    try:
        result = await dispatch(name, arguments or {})
        text = json.dumps(result, indent=2, default=str)
    except Exception as exc:
        logger.exception("[mcp:call] %s crashed", name)
        text = json.dumps({"error": str(exc)})

    return [TextContent(type="text", text=text)]


# ── Entry point ───────────────────────────────────────────────────────────


async def main():
    """Run the MCP server over stdio."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_file, color=False)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())
