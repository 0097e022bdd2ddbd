"""Build session — one ``reproto build`` subprocess for one workspace root.

Lifecycle::

    CREATED ──spawn──▶ RUNNING ──exit──▶ COMMITTING ──▶ DONE

While RUNNING, stdout is decoded record by record and accumulated
per session; stderr is forwarded verbatim to the editor's output
channel.  Commit happens strictly after the process has exited and both
streams are drained:

* diagnostics are always committed (failed builds report their errors
  through the diagnostics channel before exiting non-zero);
* symbols are committed only when the build exited with status 0, so a
  broken edit keeps the last good outline and workspace search.

Sessions are independent: nothing here coordinates two sessions for the
same root (see ``BuildCoordinator.single_flight``).
"""

from __future__ import annotations

import asyncio
import codecs
import enum
import logging
import os
import time
from datetime import datetime, timezone

from reproto_ide.config import BUILD_ARGS
from reproto_ide.contracts import (
    BuildResult,
    Diagnostic,
    DiagnosticRecord,
    LogRecord,
    Symbol,
    SymbolRecord,
    file_uri,
)
from reproto_ide.editor import Editor
from reproto_ide.errors import DecodeError, ProcessFailure, TransportFailure
from reproto_ide.index import DiagnosticIndex, SymbolIndex
from reproto_ide.protocol import READ_CHUNK_BYTES, ProtocolDecoder, decode_stream
from reproto_ide.router import MessageRouter
from reproto_ide.toolchain import ToolchainHandle

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    CREATED = "created"
    RUNNING = "running"
    COMMITTING = "committing"
    DONE = "done"


class BuildSession:
    """Owns one build process, its accumulators and the exit-time commit."""

    def __init__(
        self,
        root: str | os.PathLike[str],
        handle: ToolchainHandle,
        diagnostics: DiagnosticIndex,
        symbols: SymbolIndex,
        editor: Editor,
    ) -> None:
        self.root = os.path.abspath(os.fspath(root))
        self.handle = handle
        self.state = SessionState.CREATED
        self.started_at = datetime.now(timezone.utc)

        self._diagnostic_index = diagnostics
        self._symbol_index = symbols
        self._editor = editor

        self._diagnostics: dict[str, list[Diagnostic]] = {}
        self._symbols: list[Symbol] = []
        self._symbols_by_uri: dict[str, list[Symbol]] = {}

        self._decoder = ProtocolDecoder()
        self._router = MessageRouter(
            on_diagnostic=self._on_diagnostic,
            on_symbol=self._on_symbol,
            on_log=self._on_log,
            on_decode_error=self._on_decode_error,
        )

    # -- record handlers ----------------------------------------------------

    def _on_diagnostic(self, record: DiagnosticRecord) -> None:
        diag = Diagnostic(
            path=record.path,
            uri=file_uri(record.path, self.root),
            range=record.range,
            message=record.message,
        )
        self._diagnostics.setdefault(record.path, []).append(diag)

    def _on_symbol(self, record: SymbolRecord) -> None:
        sym = Symbol(
            name=record.name,
            kind=record.kind,
            container_name=record.package,
            path=record.path,
            uri=file_uri(record.path, self.root),
            range=record.range,
        )
        self._symbols.append(sym)
        self._symbols_by_uri.setdefault(sym.uri, []).append(sym)

    def _on_log(self, record: LogRecord) -> None:
        self._editor.append_line(f"{record.level}: {record.message}")

    def _on_decode_error(self, err: DecodeError) -> None:
        self._editor.append_line(str(err))

    # -- lifecycle ----------------------------------------------------------

    async def run(self) -> BuildResult:
        """Spawn, stream, wait for exit, commit.

        Raises
        ------
        TransportFailure
            When the build process could not be started.  Nothing is
            committed in that case.
        """
        start = time.perf_counter()
        logger.info("[reproto:build] %s: starting", self.root)

        try:
            proc = await self.handle.spawn(BUILD_ARGS, cwd=self.root)
        except TransportFailure:
            self.state = SessionState.DONE
            raise

        self.state = SessionState.RUNNING
        try:
            await asyncio.gather(
                self._pump_stdout(proc.stdout),
                self._pump_stderr(proc.stderr),
            )
            exit_code = await proc.wait()
        finally:
            if proc.returncode is None:
                await self._kill(proc)

        self.state = SessionState.COMMITTING
        committed = self._commit(exit_code)
        self.state = SessionState.DONE

        result = BuildResult(
            root=self.root,
            exit_code=exit_code,
            diagnostic_count=sum(len(d) for d in self._diagnostics.values()),
            symbol_count=len(self._symbols),
            decode_errors=self._decoder.errors,
            duration_ms=int((time.perf_counter() - start) * 1000),
            symbols_committed=committed,
        )
        logger.info(
            "[reproto:build] %s: exit=%s diagnostics=%d symbols=%d (%dms)",
            self.root, exit_code, result.diagnostic_count, result.symbol_count,
            result.duration_ms,
        )
        return result

    async def _kill(self, proc: asyncio.subprocess.Process) -> None:
        """Kill and reap a build that was abandoned mid-stream."""
        logger.warning("[reproto:build] %s: aborting, killing pid %s", self.root, proc.pid)
        try:
            proc.kill()
        except ProcessLookupError:
            logger.debug("[reproto:build] %s: process already gone", self.root)
        await proc.wait()
        self.state = SessionState.DONE

    async def _pump_stdout(self, reader: asyncio.StreamReader) -> None:
        async for item in decode_stream(reader, decoder=self._decoder):
            self._router.dispatch(item)

    async def _pump_stderr(self, reader: asyncio.StreamReader) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await reader.read(READ_CHUNK_BYTES)
            if not chunk:
                break
            self._editor.append(decoder.decode(chunk))
        tail = decoder.decode(b"", final=True)
        if tail:
            self._editor.append(tail)

    def _commit(self, exit_code: int | None) -> bool:
        """Publish accumulated results.  Returns True if symbols were committed."""
        self._diagnostic_index.commit(self.root, self._diagnostics)

        if exit_code == 0:
            self._symbol_index.commit(self.root, self._symbols, self._symbols_by_uri)
            return True

        failure = ProcessFailure(
            self.handle.command(BUILD_ARGS), exit_code, root=self.root,
        )
        logger.warning("[reproto:build] %s: %s", self.root, failure)
        self._editor.show_output()
        return False

    def __repr__(self) -> str:
        return f"BuildSession(root={self.root!r}, state={self.state.value!r})"


__all__ = ["BuildSession", "SessionState"]
