"""Build coordinator — turns editor save/open events into build sessions.

Every trigger resolves the owning workspace root, checks for a
``reproto.toml`` manifest and starts an independent ``BuildSession`` as
an asyncio task.  Nothing is awaited by the trigger itself.

By default sessions for the same root are not coordinated: a session
that started earlier may finish later and overwrite newer results
(last exit wins).  With ``single_flight=True`` a trigger that arrives
while a root is building is coalesced into one follow-up build that
starts as soon as the in-flight session finishes.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import unquote, urlparse

from reproto_ide.config import MANIFEST_NAME, SOURCE_SUFFIX
from reproto_ide.contracts import BuildResult
from reproto_ide.editor import Editor
from reproto_ide.errors import ToolchainError
from reproto_ide.index import DiagnosticIndex, IndexProvider, SymbolIndex, root_key
from reproto_ide.session import BuildSession
from reproto_ide.toolchain import ToolchainHandle

logger = logging.getLogger(__name__)


def uri_to_path(uri: str) -> str:
    """``file:///a/b.reproto`` → ``/a/b.reproto``; plain paths pass through."""
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return uri
    path = unquote(parsed.path)
    # file:///C:/x on Windows parses to "/C:/x"
    if os.name == "nt" and len(path) > 2 and path[0] == "/" and path[2] == ":":
        path = path[1:]
    return path


def has_manifest(root: str | os.PathLike[str]) -> bool:
    return os.path.isfile(os.path.join(os.fspath(root), MANIFEST_NAME))


class BuildCoordinator:
    """Starts builds for workspace roots in response to editor events."""

    def __init__(
        self,
        handle: ToolchainHandle,
        roots: Iterable[str | os.PathLike[str]],
        editor: Editor,
        *,
        diagnostics: DiagnosticIndex | None = None,
        symbols: SymbolIndex | None = None,
        single_flight: bool = False,
    ) -> None:
        self.handle = handle
        self.roots: list[str] = [os.path.abspath(os.fspath(r)) for r in roots]
        self.editor = editor
        self.provider = IndexProvider(diagnostics, symbols)
        self.single_flight = single_flight

        self._tasks: set[asyncio.Task[BuildResult | None]] = set()
        self._inflight: dict[str, asyncio.Task[BuildResult | None]] = {}
        self._pending: set[str] = set()

    @property
    def diagnostics(self) -> DiagnosticIndex:
        return self.provider.diagnostics

    @property
    def symbols(self) -> SymbolIndex:
        return self.provider.symbols

    # -- triggers -----------------------------------------------------------

    def on_save(self, uri: str) -> asyncio.Task[BuildResult | None] | None:
        return self.rebuild(uri)

    def on_open(self, uri: str) -> asyncio.Task[BuildResult | None] | None:
        return self.rebuild(uri)

    def rebuild(self, uri: str) -> asyncio.Task[BuildResult | None] | None:
        """Rebuild the root owning *uri* if it is a source file in a buildable root."""
        path = uri_to_path(uri)
        if Path(path).suffix != SOURCE_SUFFIX:
            return None

        root = self.owning_root(path)
        if root is None:
            logger.debug("[reproto:coordinator] %s is outside every workspace root", path)
            return None

        return self.build_root(root)

    def build_all(self, roots: Iterable[str | os.PathLike[str]] | None = None) -> list[asyncio.Task]:
        """Start a build for every root without waiting for any of them."""
        targets = self.roots if roots is None else [os.path.abspath(os.fspath(r)) for r in roots]
        tasks = []
        for root in targets:
            task = self.build_root(root)
            if task is not None:
                tasks.append(task)
        return tasks

    def build_root(self, root: str | os.PathLike[str]) -> asyncio.Task[BuildResult | None] | None:
        """Start a session for *root*; no-op when the manifest is missing."""
        root = os.path.abspath(os.fspath(root))
        if not has_manifest(root):
            logger.debug("[reproto:coordinator] %s has no %s, skipping", root, MANIFEST_NAME)
            return None

        key = root_key(root)
        if self.single_flight and key in self._inflight:
            self._pending.add(key)
            logger.debug("[reproto:coordinator] %s already building, coalescing", root)
            return self._inflight[key]

        task = asyncio.ensure_future(self._run_session(root))
        self._tasks.add(task)
        self._inflight[key] = task
        task.add_done_callback(lambda t, r=root: self._on_done(r, t))
        return task

    # -- resolution ---------------------------------------------------------

    def owning_root(self, path: str | os.PathLike[str]) -> str | None:
        """First configured root that is an ancestor of *path*."""
        target = Path(os.path.abspath(os.fspath(path)))
        for root in self.roots:
            if target == Path(root) or Path(root) in target.parents:
                return root
        return None

    # -- session execution --------------------------------------------------

    async def _run_session(self, root: str) -> BuildResult | None:
        session = BuildSession(
            root, self.handle, self.diagnostics, self.symbols, self.editor,
        )
        try:
            return await session.run()
        except ToolchainError as exc:
            logger.error("[reproto:coordinator] %s: %s", root, exc)
            self.editor.show_error(str(exc))
        except Exception:
            logger.exception("[reproto:coordinator] %s: build session crashed", root)
            self.editor.show_error(f"build of {root} failed unexpectedly")
        return None

    def _on_done(self, root: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        key = root_key(root)
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if key in self._pending:
            self._pending.discard(key)
            self.build_root(root)

    async def wait_idle(self) -> None:
        """Wait until no session (including coalesced follow-ups) is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            # let done-callbacks schedule follow-ups
            await asyncio.sleep(0)

    @property
    def active(self) -> int:
        return len(self._tasks)


__all__ = ["BuildCoordinator", "has_manifest", "uri_to_path"]
