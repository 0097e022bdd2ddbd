"""Tests for reproto_ide.session — one build, its streams and its commit."""

from __future__ import annotations

from pathlib import Path

import pytest

from reproto_ide.config import BUILD_ARGS
from reproto_ide.contracts import file_uri
from reproto_ide.errors import TransportFailure
from reproto_ide.index import DiagnosticIndex, SymbolIndex
from reproto_ide.session import BuildSession, SessionState
from tests.conftest import (
    FakeHandle,
    FakeProcess,
    RecordingEditor,
    diag_line,
    log_line,
    process,
    symbol_line,
)


def _session(root: Path, handle: FakeHandle, editor, diagnostics=None, symbols=None):
    return BuildSession(
        root, handle, diagnostics or DiagnosticIndex(), symbols or SymbolIndex(), editor,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Successful builds
# ═══════════════════════════════════════════════════════════════════════════


class TestSuccessfulBuild:
    @pytest.mark.asyncio
    async def test_commits_both(self, project: Path, editor):
        handle = FakeHandle([process(symbol_line("Foo") + symbol_line("Bar", "b.reproto"))])
        diagnostics, symbols = DiagnosticIndex(), SymbolIndex()
        session = _session(project, handle, editor, diagnostics, symbols)

        result = await session.run()

        assert result.exit_code == 0
        assert result.symbols_committed is True
        assert result.symbol_count == 2
        assert session.state is SessionState.DONE
        assert [s.name for s in symbols.for_root(project)] == ["Foo", "Bar"]
        uri = file_uri("a.reproto", str(project))
        assert [s.name for s in symbols.for_file(uri)] == ["Foo"]
        assert diagnostics.get(project) == {}

    @pytest.mark.asyncio
    async def test_spawn_args_and_cwd(self, project: Path, editor):
        handle = FakeHandle([process()])
        await _session(project, handle, editor).run()
        assert handle.spawned == [{"args": list(BUILD_ARGS), "cwd": str(project)}]

    @pytest.mark.asyncio
    async def test_symbol_fields(self, project: Path, editor):
        handle = FakeHandle([process(symbol_line("Foo", kind="Enum", package="a.b"))])
        symbols = SymbolIndex()
        await _session(project, handle, editor, symbols=symbols).run()
        (sym,) = symbols.for_root(project)
        assert sym.container_name == "a.b"
        assert sym.editor_kind == "enum"
        assert sym.uri == (project / "a.reproto").as_uri()


# ═══════════════════════════════════════════════════════════════════════════
# Failed builds
# ═══════════════════════════════════════════════════════════════════════════


class TestFailedBuild:
    @pytest.mark.asyncio
    async def test_diagnostics_committed_symbols_kept(self, project: Path, editor):
        diagnostics, symbols = DiagnosticIndex(), SymbolIndex()
        good = FakeHandle([process(symbol_line("Foo"))])
        await _session(project, good, editor, diagnostics, symbols).run()

        bad = FakeHandle([process(diag_line("a.reproto", "syntax error", line=3), returncode=1)])
        result = await _session(project, bad, editor, diagnostics, symbols).run()

        assert result.exit_code == 1
        assert result.symbols_committed is False
        assert [d.message for d in diagnostics.get(project)["a.reproto"]] == ["syntax error"]
        # last good outline survives
        assert [s.name for s in symbols.for_root(project)] == ["Foo"]
        assert editor.shown == 1

    @pytest.mark.asyncio
    async def test_symbols_from_failed_build_discarded(self, project: Path, editor):
        symbols = SymbolIndex()
        handle = FakeHandle([process(symbol_line("Half"), returncode=2)])
        result = await _session(project, handle, editor, symbols=symbols).run()
        assert result.symbol_count == 1
        assert symbols.for_root(project) == []

    @pytest.mark.asyncio
    async def test_spawn_failure_commits_nothing(self, project: Path, editor):
        diagnostics = DiagnosticIndex()
        diagnostics.commit(project, {"a.reproto": []})
        handle = FakeHandle([TransportFailure(["reproto"], "ENOENT")])
        session = _session(project, handle, editor, diagnostics)
        with pytest.raises(TransportFailure):
            await session.run()
        assert session.state is SessionState.DONE
        assert list(diagnostics.get(project)) == ["a.reproto"]


# ═══════════════════════════════════════════════════════════════════════════
# Streams
# ═══════════════════════════════════════════════════════════════════════════


class TestStreams:
    @pytest.mark.asyncio
    async def test_stderr_forwarded_verbatim(self, project: Path, editor):
        handle = FakeHandle([process(stderr=b"warning: x\npartial")])
        await _session(project, handle, editor).run()
        assert "".join(editor.output) == "warning: x\npartial"

    @pytest.mark.asyncio
    async def test_logs_and_decode_errors_to_output(self, project: Path, editor):
        handle = FakeHandle([process(log_line("compiling", "info") + b"{broken\n" + symbol_line())])
        symbols = SymbolIndex()
        result = await _session(project, handle, editor, symbols=symbols).run()
        assert editor.lines[0] == "info: compiling"
        assert editor.lines[1].startswith("illegal json on stdout:")
        assert result.decode_errors == 1
        # the bad line did not end the stream
        assert len(symbols.for_root(project)) == 1

    @pytest.mark.asyncio
    async def test_diagnostics_grouped_by_path(self, project: Path, editor):
        out = diag_line("a.reproto", "1") + diag_line("b.reproto", "2") + diag_line("a.reproto", "3")
        diagnostics = DiagnosticIndex()
        result = await _session(project, FakeHandle([process(out, returncode=1)]), editor, diagnostics).run()
        got = diagnostics.get(project)
        assert [d.message for d in got["a.reproto"]] == ["1", "3"]
        assert [d.message for d in got["b.reproto"]] == ["2"]
        assert result.diagnostic_count == 3


class _BrokenEditor(RecordingEditor):
    def append_line(self, text: str) -> None:
        raise RuntimeError("output channel closed")


class TestAbort:
    @pytest.mark.asyncio
    async def test_handler_error_kills_and_reaps_process(self, project: Path):
        proc = FakeProcess(log_line("compiling") + symbol_line(), returncode=None)
        handle = FakeHandle([lambda: proc])
        symbols = SymbolIndex()
        session = _session(project, handle, _BrokenEditor(), symbols=symbols)

        with pytest.raises(RuntimeError, match="output channel closed"):
            await session.run()

        assert proc.killed is True
        assert proc.returncode == -9
        assert session.state is SessionState.DONE
        assert symbols.for_root(project) == []

    @pytest.mark.asyncio
    async def test_clean_exit_not_killed(self, project: Path, editor):
        proc = FakeProcess(symbol_line())
        await _session(project, FakeHandle([lambda: proc]), editor).run()
        assert proc.killed is False


# ═══════════════════════════════════════════════════════════════════════════
# End to end
# ═══════════════════════════════════════════════════════════════════════════


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_failed_build_reports_diagnostic(self, project: Path, editor):
        diagnostics, symbols = DiagnosticIndex(), SymbolIndex()
        handle = FakeHandle([process(diag_line("a.proto", "bad type"), returncode=1)])
        await _session(project, handle, editor, diagnostics, symbols).run()

        (entry,) = diagnostics.get(project)["a.proto"]
        assert entry.message == "bad type"
        assert symbols.roots() == []

    @pytest.mark.asyncio
    async def test_successful_build_feeds_providers(self, project: Path, editor):
        diagnostics, symbols = DiagnosticIndex(), SymbolIndex()
        handle = FakeHandle([process(symbol_line("Foo", "a.proto", kind="type", package="pkg"))])
        await _session(project, handle, editor, diagnostics, symbols).run()

        (found,) = symbols.search("fo")
        assert found.name == "Foo"
        assert symbols.for_file(file_uri("a.proto", str(project))) == [found]
