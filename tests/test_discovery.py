"""Tests for reproto_ide.discovery — candidate resolution and selection."""

from __future__ import annotations

import os
from pathlib import Path

from reproto_ide.config import Settings
from reproto_ide.discovery import resolve, select


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


# ═══════════════════════════════════════════════════════════════════════════
# resolve
# ═══════════════════════════════════════════════════════════════════════════


class TestResolve:
    def test_nothing_defined(self):
        c = resolve(_settings(), environ={}, platform="linux")
        assert c.paths == ()
        assert c.explicit is None
        assert c.descriptions == [
            "reproto.executable (user configuration) is not defined",
            "$REPROTO_HOME is not defined",
            "$HOME is not defined",
            "$USERPROFILE is not defined",
            "$PATH is not defined",
        ]

    def test_order(self):
        env = {
            "REPROTO_HOME": "/rh",
            "HOME": "/home/u",
            "USERPROFILE": "/profile",
            "PATH": os.pathsep.join(["/usr/bin", "/bin"]),
        }
        c = resolve(_settings(executable="/explicit"), environ=env, platform="linux")
        assert c.paths == (
            "/explicit",
            os.path.join("/rh", "reproto"),
            os.path.join("/home/u", ".local", "bin", "reproto"),
            os.path.join("/profile", ".local", "bin", "reproto"),
            os.path.join("/usr/bin", "reproto"),
            os.path.join("/bin", "reproto"),
        )
        assert c.explicit == "/explicit"
        assert c.descriptions[0] == "reproto.executable (user configuration)"
        assert c.descriptions[2] == "$HOME/.local/bin/reproto"

    def test_windows_exe_name(self):
        c = resolve(_settings(), environ={"REPROTO_HOME": "C:\\rh"}, platform="win32")
        assert c.paths[0].endswith("reproto.exe")

    def test_empty_path_entries_skipped(self):
        env = {"PATH": os.pathsep.join(["", "/bin", ""])}
        c = resolve(_settings(), environ=env, platform="linux")
        assert c.paths == (os.path.join("/bin", "reproto"),)

    def test_is_pure(self, tmp_path: Path):
        # Nothing exists at these paths; resolve still lists them.
        env = {"REPROTO_HOME": str(tmp_path / "missing")}
        c = resolve(_settings(), environ=env, platform="linux")
        assert c.paths == (str(tmp_path / "missing" / "reproto"),)


# ═══════════════════════════════════════════════════════════════════════════
# select
# ═══════════════════════════════════════════════════════════════════════════


class TestSelect:
    def test_first_existing_wins(self):
        env = {"REPROTO_HOME": "/a", "HOME": "/b", "PATH": "/c"}
        c = resolve(_settings(), environ=env, platform="linux")
        existing = {os.path.join("/b", ".local", "bin", "reproto"), os.path.join("/c", "reproto")}
        handle = select(c, "/ws", exists=existing.__contains__)
        assert handle is not None
        assert handle.binary_path == os.path.join("/b", ".local", "bin", "reproto")
        assert handle.working_root == "/ws"

    def test_none_when_nothing_exists(self):
        c = resolve(_settings(), environ={"PATH": "/nowhere"}, platform="linux")
        assert select(c, exists=lambda p: False) is None

    def test_explicit_trusted_without_check(self):
        c = resolve(_settings(executable="/does/not/exist"), environ={}, platform="linux")
        checked: list[str] = []

        def exists(path: str) -> bool:
            checked.append(path)
            return False

        handle = select(c, exists=exists)
        assert handle is not None
        assert handle.binary_path == "/does/not/exist"
        assert checked == []

    def test_real_filesystem(self, tmp_path: Path):
        binary = tmp_path / "reproto"
        binary.write_text("#!/bin/sh\n")
        c = resolve(_settings(), environ={"REPROTO_HOME": str(tmp_path)}, platform="linux")
        handle = select(c)
        assert handle is not None
        assert handle.binary_path == str(binary)
