"""MCP tool definitions and dispatch logic."""

from __future__ import annotations

import logging
import os
import time
from typing import Any

from reproto_ide.config import Settings, get_settings
from reproto_ide.coordinator import BuildCoordinator
from reproto_ide.discovery import resolve
from reproto_ide.editor import LoggingEditor
from reproto_ide.errors import DiscoveryFailure, ToolchainError
from reproto_ide.extension import locate

logger = logging.getLogger(__name__)

# ── Tool catalogue ────────────────────────────────────────────────────────

TOOL_DEFINITIONS = [
    {
        "name": "reproto_rebuild",
        "description": (
            "Build a reproto workspace root (a directory holding reproto.toml) "
            "and wait for it to finish. Returns the exit code and how many "
            "diagnostics and symbols the build produced. Call this before "
            "reading diagnostics or symbols for a root."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "root": {
                    "type": "string",
                    "description": "Workspace root directory",
                },
            },
            "required": ["root"],
        },
    },
    {
        "name": "reproto_get_diagnostics",
        "description": (
            "Diagnostics from the last completed build of a root, grouped by "
            "root-relative source path."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "root": {
                    "type": "string",
                    "description": "Workspace root directory",
                },
            },
            "required": ["root"],
        },
    },
    {
        "name": "reproto_document_symbols",
        "description": (
            "Symbols declared in one .reproto file, from the last successful "
            "build of its root."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "uri": {
                    "type": "string",
                    "description": "file:// URI of the .reproto document",
                },
            },
            "required": ["uri"],
        },
    },
    {
        "name": "reproto_workspace_symbols",
        "description": (
            "Search every built root for symbols whose name contains the "
            "query (case-insensitive). An empty query returns everything."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Substring to search for",
                },
            },
            "required": [],
        },
    },
]


# ── Shared state ──────────────────────────────────────────────────────────


class ToolContext:
    """One toolchain handle and one coordinator for the server's lifetime."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.editor = LoggingEditor()
        self.coordinator: BuildCoordinator | None = None

    async def get_coordinator(self, root: str | None = None) -> BuildCoordinator:
        """Lazily discover the toolchain and create the coordinator.

        Raises ``DiscoveryFailure`` when no toolchain is available.
        """
        if self.coordinator is None:
            handle = await locate(self.settings, self.editor, root, installer=None)
            if handle is None:
                raise DiscoveryFailure(resolve(self.settings).descriptions)
            self.coordinator = BuildCoordinator(
                handle, [], self.editor, single_flight=self.settings.single_flight,
            )
        if root is not None and os.path.abspath(root) not in self.coordinator.roots:
            self.coordinator.roots.append(os.path.abspath(root))
        return self.coordinator


_context: ToolContext | None = None


def get_context() -> ToolContext:
    global _context
    if _context is None:
        _context = ToolContext()
    return _context


def set_context(context: ToolContext | None) -> None:
    """Replace the shared context (``None`` resets it)."""
    global _context
    _context = context


# ── Dispatch ──────────────────────────────────────────────────────────────


async def dispatch(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Route a tool call to its handler and log the outcome."""
    start = time.perf_counter()
    logger.info("[mcp:call]   %s  args=%s", name, _summarise(arguments))
    try:
        result = await _dispatch(name, arguments)
    except ToolchainError as exc:
        result = exc.to_dict()
    _log_result(name, result, start)
    return result


async def _dispatch(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    ctx = get_context()
    match name:
        case "reproto_rebuild":
            root = _require(arguments, "root")
            coordinator = await ctx.get_coordinator(root)
            task = coordinator.build_root(root)
            if task is None:
                return {"error": f"not a reproto project (no reproto.toml): {root}"}
            result = await task
            await coordinator.wait_idle()
            if result is None:
                return {"error": f"build of {root} could not run"}
            return result.model_dump(mode="json")
        case "reproto_get_diagnostics":
            root = _require(arguments, "root")
            coordinator = await ctx.get_coordinator(root)
            diagnostics = coordinator.provider.get_diagnostics(root)
            return {
                "root": os.path.abspath(root),
                "diagnostics": {
                    path: [d.model_dump(mode="json") for d in diags]
                    for path, diags in diagnostics.items()
                },
            }
        case "reproto_document_symbols":
            uri = _require(arguments, "uri")
            coordinator = await ctx.get_coordinator()
            return {
                "uri": uri,
                "symbols": [_symbol(s) for s in coordinator.provider.get_document_symbols(uri)],
            }
        case "reproto_workspace_symbols":
            query = arguments.get("query", "")
            coordinator = await ctx.get_coordinator()
            return {
                "query": query,
                "symbols": [
                    _symbol(s) for s in coordinator.provider.search_workspace_symbols(query)
                ],
            }
        case _:
            return {"error": f"Unknown tool: {name}"}


def _require(arguments: dict[str, Any], key: str) -> str:
    value = arguments.get(key)
    if not value:
        raise ToolchainError(f"missing required argument: {key}")
    return str(value)


def _symbol(sym) -> dict[str, Any]:
    return {**sym.model_dump(mode="json"), "editor_kind": sym.editor_kind}


def _summarise(args: dict[str, Any], max_len: int = 200) -> str:
    """One-line summary of MCP tool arguments."""
    raw = ", ".join(f"{k}={v!r}" for k, v in args.items())
    return raw[:max_len] + ("…" if len(raw) > max_len else "")


def _log_result(name: str, result: dict[str, Any], start: float) -> None:
    elapsed = int((time.perf_counter() - start) * 1000)
    if "error" in result:
        logger.warning("[mcp:result] %s  ERROR (%dms): %s", name, elapsed, result["error"])
    else:
        logger.info("[mcp:result] %s  OK (%dms)", name, elapsed)
