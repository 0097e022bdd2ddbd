"""Shared test fixtures — fake toolchain processes and NDJSON helpers.

Provides:
- ``diag_line`` / ``symbol_line`` / ``log_line`` — one NDJSON record as bytes
- ``FakeProcess`` — ``asyncio.subprocess.Process`` stand-in fed from bytes
- ``FakeHandle`` — duck-typed ``ToolchainHandle`` that hands out scripted processes
- ``RecordingEditor`` — ``Editor`` that records every call
- ``project`` — a workspace root holding ``reproto.toml``
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from pathlib import Path

import pytest

from reproto_ide.errors import ProcessFailure, TransportFailure

# ---------------------------------------------------------------------------
# NDJSON records
# ---------------------------------------------------------------------------


def _range(line: int = 0, col: int = 0) -> dict:
    return {"line_start": line, "col_start": col, "line_end": line, "col_end": col + 1}


def diag_line(path: str = "a.reproto", message: str = "boom", line: int = 0) -> bytes:
    record = {"type": "diagnostics", "path": path, "range": _range(line), "message": message}
    return (json.dumps(record) + "\n").encode()


def symbol_line(
    name: str = "Foo",
    path: str = "a.reproto",
    kind: str = "type",
    package: str = "pkg",
) -> bytes:
    record = {
        "type": "symbol", "kind": kind, "name": name,
        "package": package, "path": path, "range": _range(),
    }
    return (json.dumps(record) + "\n").encode()


def log_line(message: str = "hello", level: str = "info") -> bytes:
    return (json.dumps({"type": "log", "level": level, "message": message}) + "\n").encode()


# ---------------------------------------------------------------------------
# Fake processes
# ---------------------------------------------------------------------------


class FakeProcess:
    """Pre-scripted subprocess.

    Must be created inside a running event loop.  When *gate* is given,
    ``wait()`` blocks until the event is set, so tests control exit order.
    """

    def __init__(
        self,
        stdout: bytes = b"",
        stderr: bytes = b"",
        returncode: int | None = 0,
        *,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        if stdout:
            self.stdout.feed_data(stdout)
        if stderr:
            self.stderr.feed_data(stderr)
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exit = returncode
        self._gate = gate
        self.returncode: int | None = None
        self.pid = 4242
        self.killed = False

    def kill(self) -> None:
        self.killed = True
        self._exit = -9
        if self._gate is not None:
            self._gate.set()

    async def wait(self) -> int | None:
        if self._gate is not None:
            await self._gate.wait()
        self.returncode = self._exit
        return self._exit


class FakeHandle:
    """Stands in for ``ToolchainHandle``; each ``spawn`` pops the next script.

    A script is either a ``FakeProcess`` factory (called lazily so it is
    built inside the running loop) or an exception instance to raise.
    """

    def __init__(
        self,
        scripts: Sequence = (),
        *,
        binary_path: str = "/opt/reproto/bin/reproto",
        working_root: str | None = None,
        version_output: str = "reproto 0.3.40",
    ) -> None:
        self.binary_path = binary_path
        self.working_root = working_root
        self.version_output = version_output
        self.scripts = list(scripts)
        self.spawned: list[dict] = []

    def command(self, args: Sequence[str]) -> list[str]:
        return [self.binary_path, *args]

    async def spawn(self, args, *, cwd=None, env=None):
        self.spawned.append({"args": list(args), "cwd": cwd})
        if not self.scripts:
            raise TransportFailure(self.command(args), "no more scripted processes")
        script = self.scripts.pop(0)
        if isinstance(script, BaseException):
            raise script
        return script()

    async def version(self) -> str:
        if isinstance(self.version_output, BaseException):
            raise self.version_output
        return self.version_output

    async def execute(self, args) -> str:
        proc = await self.spawn(args)
        out = await proc.stdout.read()
        code = await proc.wait()
        if code != 0:
            raise ProcessFailure(self.command(args), code)
        return out.decode()

    def __str__(self) -> str:
        return self.binary_path


def process(stdout: bytes = b"", stderr: bytes = b"", returncode: int | None = 0, *, gate=None):
    """Lazy ``FakeProcess`` factory for ``FakeHandle`` scripts."""
    return lambda: FakeProcess(stdout, stderr, returncode, gate=gate)


# ---------------------------------------------------------------------------
# Editor
# ---------------------------------------------------------------------------


class RecordingEditor:
    """``Editor`` implementation that records everything it is told."""

    def __init__(self, *, confirm: bool = False) -> None:
        self.confirm = confirm
        self.output: list[str] = []
        self.lines: list[str] = []
        self.errors: list[str] = []
        self.infos: list[str] = []
        self.status: list[str] = []
        self.opened: list[str] = []
        self.shown = 0
        self.install_prompts = 0

    def append(self, text: str) -> None:
        self.output.append(text)

    def append_line(self, text: str) -> None:
        self.lines.append(text)

    def show_output(self) -> None:
        self.shown += 1

    def show_error(self, message: str) -> None:
        self.errors.append(message)

    def show_info(self, message: str) -> None:
        self.infos.append(message)

    def set_status(self, text: str) -> None:
        self.status.append(text)

    async def confirm_install(self) -> bool:
        self.install_prompts += 1
        return self.confirm

    def open_document(self, uri: str) -> None:
        self.opened.append(uri)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def editor() -> RecordingEditor:
    return RecordingEditor()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A workspace root with a manifest and one source file."""
    root = tmp_path / "proj"
    root.mkdir()
    (root / "reproto.toml").write_text("[packages]\n", encoding="utf-8")
    (root / "a.reproto").write_text("type Foo {}\n", encoding="utf-8")
    return root


@pytest.fixture(autouse=True)
def _clear_settings_cache(monkeypatch):
    """Keep ``get_settings()`` and ``REPROTO_*`` variables from leaking between tests."""
    import os

    from reproto_ide.config import get_settings

    for var in list(os.environ):
        if var.startswith("REPROTO_"):
            monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
