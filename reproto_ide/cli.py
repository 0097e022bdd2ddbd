"""Command-line entry point — ``python -m reproto_ide``.

Commands::

    build ROOT...          build each root once, print diagnostics + symbols
    symbols QUERY ROOT...  build, then search workspace symbols
    version                show discovery result, version and tier
    init [ROOT]            run ``reproto init`` in ROOT

All commands print JSON on stdout; logs and compiler output go to stderr.
The CLI always builds through the index-backed tier, whatever the
detected version supports.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any

from reproto_ide.config import VERSION, Settings, get_settings
from reproto_ide.contracts import BuildResult
from reproto_ide.coordinator import BuildCoordinator
from reproto_ide.discovery import resolve
from reproto_ide.editor import LoggingEditor
from reproto_ide.extension import Activation, locate
from reproto_ide.install import install
from reproto_ide.logging_setup import configure_logging
from reproto_ide.version import detect, select_tier

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reproto-ide",
        description="Headless reproto editor integration",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--executable", help="Explicit path to the reproto binary")
    parser.add_argument(
        "--install", action="store_true",
        help="Install the latest release if no toolchain is found",
    )
    parser.add_argument("--log-level", help="Log level (default: REPROTO_LOG_LEVEL or INFO)")

    sub = parser.add_subparsers(dest="command", required=True)

    p_build = sub.add_parser("build", help="Build workspace roots once")
    p_build.add_argument("roots", nargs="+", help="Workspace roots")

    p_symbols = sub.add_parser("symbols", help="Build, then search workspace symbols")
    p_symbols.add_argument("query", help="Case-insensitive substring")
    p_symbols.add_argument("roots", nargs="*", default=["."], help="Workspace roots")

    sub.add_parser("version", help="Show the discovered toolchain and tier")

    p_init = sub.add_parser("init", help="Initialize a new project")
    p_init.add_argument("root", nargs="?", default=".", help="Project directory")
    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    update: dict[str, Any] = {}
    if args.executable:
        update["executable"] = args.executable
    if args.log_level:
        update["log_level"] = args.log_level
    return settings.model_copy(update=update) if update else settings


def _dump(payload: dict[str, Any]) -> None:
    json.dump(payload, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


async def _build(
    settings: Settings,
    editor: LoggingEditor,
    roots: list[str],
) -> tuple[BuildCoordinator, list[BuildResult]] | None:
    root_paths = [os.path.abspath(r) for r in roots]
    handle = await locate(
        settings, editor, root_paths[0],
        installer=install if editor.auto_install else None,
    )
    if handle is None:
        return None

    coordinator = BuildCoordinator(handle, root_paths, editor)
    tasks = coordinator.build_all()
    results = [r for r in await asyncio.gather(*tasks) if r is not None]
    await coordinator.wait_idle()
    return coordinator, results


async def cmd_build(settings: Settings, editor: LoggingEditor, args: argparse.Namespace) -> int:
    built = await _build(settings, editor, args.roots)
    if built is None:
        return 2
    coordinator, results = built

    _dump({
        "builds": [r.model_dump(mode="json") for r in results],
        "diagnostics": {
            root: {
                path: [d.model_dump(mode="json") for d in diags]
                for path, diags in coordinator.diagnostics.get(root).items()
            }
            for root in coordinator.roots
        },
        "symbols": [
            s.model_dump(mode="json")
            for root in coordinator.roots
            for s in coordinator.symbols.for_root(root)
        ],
    })
    ok = bool(results) and all(r.succeeded for r in results)
    return 0 if ok else 1


async def cmd_symbols(settings: Settings, editor: LoggingEditor, args: argparse.Namespace) -> int:
    built = await _build(settings, editor, args.roots)
    if built is None:
        return 2
    coordinator, _ = built

    matches = coordinator.provider.search_workspace_symbols(args.query)
    _dump({
        "query": args.query,
        "symbols": [
            {**s.model_dump(mode="json"), "editor_kind": s.editor_kind}
            for s in matches
        ],
    })
    return 0


async def cmd_version(settings: Settings, editor: LoggingEditor, args: argparse.Namespace) -> int:
    candidates = resolve(settings)
    handle = await locate(settings, editor, os.getcwd(), installer=None)
    if handle is None:
        _dump({"found": False, "looked_in": candidates.descriptions})
        return 2

    version = await detect(handle)
    tier = select_tier(
        version, settings.tier_override, settings.default_tier, settings.threshold_version,
    )
    _dump({
        "found": True,
        "binary": handle.binary_path,
        "version": str(version) if version else None,
        "tier": tier.value,
        "looked_in": candidates.descriptions,
    })
    return 0


async def cmd_init(settings: Settings, editor: LoggingEditor, args: argparse.Namespace) -> int:
    root = os.path.abspath(args.root)
    handle = await locate(settings, editor, root, installer=None)
    if handle is None:
        return 2

    version = await detect(handle)
    tier = select_tier(
        version, settings.tier_override, settings.default_tier, settings.threshold_version,
    )
    activation = Activation(handle, tier, editor, version=version)
    ok = await activation.init_project()
    _dump({"root": root, "initialized": ok})
    return 0 if ok else 1


_COMMANDS = {
    "build": cmd_build,
    "symbols": cmd_symbols,
    "version": cmd_version,
    "init": cmd_init,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = _settings_from_args(args)
    configure_logging(settings.log_level, settings.log_file)

    editor = LoggingEditor(auto_install=args.install)
    handler = _COMMANDS[args.command]
    try:
        return asyncio.run(handler(settings, editor, args))
    except KeyboardInterrupt:
        return 130


__all__ = ["build_parser", "main"]
