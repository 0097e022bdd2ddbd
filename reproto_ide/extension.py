"""Activation — discover the toolchain, pick a tier, wire that tier up.

Flow::

    resolve ─▶ select ─┬─ found ─▶ detect version ─▶ select_tier ─▶ tier activator
                       └─ none  ─▶ report sources ─▶ offer install ─▶ activate again (once)

Each ``CapabilityTier`` owns exactly one activator; there is no
string-keyed branching after the tier has been chosen.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable, Mapping, Sequence
from pathlib import Path

from reproto_ide.config import Settings
from reproto_ide.contracts import CapabilityTier, Version
from reproto_ide.coordinator import BuildCoordinator, uri_to_path
from reproto_ide.discovery import resolve, select
from reproto_ide.editor import Editor
from reproto_ide.errors import DiscoveryFailure, ProcessFailure, TransportFailure
from reproto_ide.install import install as default_installer
from reproto_ide.language_client import ReprotoLanguageClient
from reproto_ide.toolchain import ToolchainHandle
from reproto_ide.version import detect, select_tier

logger = logging.getLogger(__name__)

Installer = Callable[[Editor], Awaitable[bool]]


class Activation:
    """A running integration: one tier, one toolchain handle."""

    def __init__(
        self,
        handle: ToolchainHandle,
        tier: CapabilityTier,
        editor: Editor,
        *,
        version: Version | None = None,
        coordinator: BuildCoordinator | None = None,
        language_client: ReprotoLanguageClient | None = None,
    ) -> None:
        self.handle = handle
        self.tier = tier
        self.editor = editor
        self.version = version
        self.coordinator = coordinator
        self.language_client = language_client

    @property
    def status_text(self) -> str:
        version = str(self.version) if self.version else "unknown version"
        return f"reproto {version} ({self.tier.value})"

    def on_save(self, uri: str) -> None:
        if self.coordinator is not None:
            self.coordinator.on_save(uri)
        elif self.language_client is not None:
            self.language_client.did_save(uri)

    def on_open(self, uri: str, text: str | None = None) -> None:
        if self.coordinator is not None:
            self.coordinator.on_open(uri)
        elif self.language_client is not None:
            if text is None:
                text = Path(uri_to_path(uri)).read_text(encoding="utf-8", errors="replace")
            self.language_client.did_open(uri, text)

    async def init_project(self) -> bool:
        """``reproto init`` in the working root; reports the outcome to the editor."""
        self.editor.append_line("Command: Initializing new project")
        try:
            await self.handle.init_project(self.editor)
        except (ProcessFailure, TransportFailure) as exc:
            self.editor.show_error(f"Failed to initialize project: {exc}")
            return False
        self.editor.show_info("Project Initialized")
        return True

    async def close(self) -> None:
        if self.coordinator is not None:
            await self.coordinator.wait_idle()
        if self.language_client is not None:
            await self.language_client.stop()


# ---------------------------------------------------------------------------
# Tier activators
# ---------------------------------------------------------------------------


async def activate_simple(
    handle: ToolchainHandle,
    settings: Settings,
    editor: Editor,
    roots: Sequence[str],
) -> BuildCoordinator:
    """Index-backed tier: build every root now, rebuild on save/open."""
    coordinator = BuildCoordinator(
        handle, roots, editor, single_flight=settings.single_flight,
    )
    coordinator.build_all()
    return coordinator


async def activate_language_client(
    handle: ToolchainHandle,
    settings: Settings,
    editor: Editor,
    roots: Sequence[str],
) -> ReprotoLanguageClient | None:
    """Language-server tier.  Returns ``None`` if the server fails to start."""
    client = ReprotoLanguageClient(handle, settings, editor, list(roots))
    try:
        await client.start()
    except TransportFailure as exc:
        logger.error("[reproto:activate] %s", exc)
        editor.show_error(str(exc))
        return None
    return client


def report_discovery_failure(editor: Editor, failure: DiscoveryFailure) -> None:
    editor.append_line(f"{failure.message}!")
    for line in failure.report_lines():
        editor.append_line(line)
    editor.show_output()
    editor.show_error("Usable `reproto` command could not be found!")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def locate(
    settings: Settings,
    editor: Editor,
    working_root: str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    platform: str | None = None,
    installer: Installer | None = default_installer,
) -> ToolchainHandle | None:
    """Discover the toolchain, offering one install when nothing is found."""
    candidates = resolve(settings, environ, platform)
    handle = select(candidates, working_root)
    if handle is not None:
        return handle

    report_discovery_failure(editor, DiscoveryFailure(candidates.descriptions))
    if installer is None or not await editor.confirm_install():
        return None
    if not await installer(editor):
        return None

    editor.append_line("reactivating extension")
    candidates = resolve(settings, environ, platform)
    handle = select(candidates, working_root)
    if handle is None:
        report_discovery_failure(editor, DiscoveryFailure(candidates.descriptions))
    return handle


async def activate(
    settings: Settings,
    editor: Editor,
    roots: Sequence[str | os.PathLike[str]] = (),
    *,
    environ: Mapping[str, str] | None = None,
    platform: str | None = None,
    installer: Installer | None = default_installer,
) -> Activation | None:
    """Discover, negotiate and start the integration.

    Returns ``None`` when no toolchain could be found (and none was
    installed) or the selected tier failed to start.
    """
    root_paths = [os.path.abspath(os.fspath(r)) for r in roots]
    handle = await locate(
        settings, editor, root_paths[0] if root_paths else None,
        environ=environ, platform=platform, installer=installer,
    )
    if handle is None:
        return None

    version = await detect(handle)
    tier = select_tier(
        version,
        settings.tier_override,
        settings.default_tier,
        settings.threshold_version,
    )
    editor.append_line(f"using reproto from `{handle}`")

    activation = Activation(handle, tier, editor, version=version)
    editor.set_status(activation.status_text)

    if tier is CapabilityTier.LANGUAGE_CLIENT:
        activation.language_client = await activate_language_client(
            handle, settings, editor, root_paths,
        )
        if activation.language_client is None:
            return None
    else:
        activation.coordinator = await activate_simple(handle, settings, editor, root_paths)

    logger.info("[reproto:activate] %s", activation.status_text)
    return activation


__all__ = [
    "Activation",
    "activate",
    "activate_language_client",
    "activate_simple",
    "locate",
    "report_discovery_failure",
]
