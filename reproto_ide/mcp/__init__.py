"""reproto MCP server package.

Exposes the build coordinator and its diagnostic/symbol indices as MCP
tools that any MCP-compatible client can call natively.

Usage::

    # As a module:
    python -m reproto_ide.mcp

    # Or import and run:
    from reproto_ide.mcp import main
    asyncio.run(main())
"""

from .server import main  # noqa: F401

__all__ = ["main"]
