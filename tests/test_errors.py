"""Tests for reproto_ide.errors — the toolchain error hierarchy."""

import pytest

from reproto_ide.errors import (
    DecodeError,
    DiscoveryFailure,
    InstallError,
    ProcessFailure,
    ToolchainError,
    TransportFailure,
    VersionUnknown,
)


# ---------------------------------------------------------------------------
# ToolchainError (base)
# ---------------------------------------------------------------------------


class TestToolchainError:
    def test_basic_construction(self):
        err = ToolchainError("something broke")
        assert str(err) == "something broke"
        assert err.message == "something broke"
        assert err.detail == {}

    def test_to_dict(self):
        err = ToolchainError("fail", detail={"x": 1})
        d = err.to_dict()
        assert d["error"] == "ToolchainError"
        assert d["message"] == "fail"
        assert d["x"] == 1

    def test_subclasses(self):
        for cls in (
            DiscoveryFailure, VersionUnknown, DecodeError,
            ProcessFailure, TransportFailure, InstallError,
        ):
            assert issubclass(cls, ToolchainError)


# ---------------------------------------------------------------------------
# DiscoveryFailure
# ---------------------------------------------------------------------------


class TestDiscoveryFailure:
    def test_report_lines_numbered(self):
        err = DiscoveryFailure(["$REPROTO_HOME is not defined", "$PATH"])
        assert err.report_lines() == [
            "looked in the following places:",
            "#0: $REPROTO_HOME is not defined",
            "#1: $PATH",
        ]

    def test_message_and_detail(self):
        err = DiscoveryFailure(["a"])
        assert "could not be found" in str(err)
        assert err.to_dict()["looked_in"] == ["a"]

    def test_descriptions_copied(self):
        source = ["a"]
        err = DiscoveryFailure(source)
        source.append("b")
        assert err.descriptions == ["a"]


# ---------------------------------------------------------------------------
# Remaining errors
# ---------------------------------------------------------------------------


class TestVersionUnknown:
    def test_fields(self):
        err = VersionUnknown("/bin/reproto", "exit 1")
        assert err.binary == "/bin/reproto"
        assert "`/bin/reproto`" in str(err)
        assert err.to_dict()["reason"] == "exit 1"


class TestDecodeError:
    def test_message(self):
        err = DecodeError("{oops", "Expecting value")
        assert str(err) == "illegal json on stdout: Expecting value"
        assert err.line == "{oops"
        assert err.to_dict()["line_length"] == 5


class TestProcessFailure:
    def test_message(self):
        err = ProcessFailure(["reproto", "build"], 2, root="/ws")
        assert str(err) == "command exited with non-zero exit status: 2"
        d = err.to_dict()
        assert d["exit_code"] == 2
        assert d["root"] == "/ws"

    def test_no_root(self):
        err = ProcessFailure(["reproto"], None)
        assert "root" not in err.to_dict()
        assert err.root == ""


class TestTransportFailure:
    def test_message_includes_command(self):
        err = TransportFailure(["reproto", "language-server"], "No such file")
        assert str(err) == "failed to start `reproto language-server`: No such file"


class TestInstallError:
    def test_url_optional(self):
        assert "url" not in InstallError("nope").to_dict()
        err = InstallError("bad status code: 404", url="https://x/y")
        assert str(err) == "install failed: bad status code: 404"
        assert err.to_dict()["url"] == "https://x/y"

    def test_is_exception(self):
        with pytest.raises(ToolchainError):
            raise InstallError("boom")
