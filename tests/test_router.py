"""Tests for reproto_ide.router — record dispatch by type."""

from __future__ import annotations

from reproto_ide.contracts import UnknownRecord
from reproto_ide.errors import DecodeError
from reproto_ide.protocol import decode_line
from reproto_ide.router import MessageRouter
from tests.conftest import diag_line, log_line, symbol_line


class TestMessageRouter:
    def test_routes_by_type(self):
        seen: list[tuple[str, object]] = []
        router = MessageRouter(
            on_diagnostic=lambda r: seen.append(("diag", r.message)),
            on_symbol=lambda r: seen.append(("sym", r.name)),
            on_log=lambda r: seen.append(("log", r.message)),
            on_decode_error=lambda e: seen.append(("err", e.reason)),
        )
        router.dispatch(decode_line(diag_line(message="m").decode()))
        router.dispatch(decode_line(symbol_line("S").decode()))
        router.dispatch(decode_line(log_line("l").decode()))
        router.dispatch(DecodeError("x", "bad"))

        assert seen == [("diag", "m"), ("sym", "S"), ("log", "l"), ("err", "bad")]
        assert router.routed == 3
        assert router.counts["decode_error"] == 1

    def test_unknown_ignored(self):
        called = []
        router = MessageRouter(on_log=called.append)
        router.dispatch(UnknownRecord(type="progress"))
        assert called == []
        assert router.counts["unknown"] == 1
        assert router.routed == 0

    def test_missing_handler_drops(self):
        router = MessageRouter()
        router.dispatch(decode_line(diag_line().decode()))
        assert router.counts["diagnostics"] == 1
