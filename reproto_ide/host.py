"""Host platform helpers — release naming and the executable file name."""

from __future__ import annotations

import platform as _platform
import sys

from reproto_ide.config import TOOL_NAME

_PLATFORMS: dict[str, str] = {
    "linux": "linux",
    "darwin": "osx",
    "win32": "windows",
}

_ARCHES: dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
}


def get_platform(system: str | None = None) -> str:
    """Map ``sys.platform`` to the release platform name.

    Raises ``ValueError`` for unsupported platforms.
    """
    system = system or sys.platform
    for prefix, name in _PLATFORMS.items():
        if system.startswith(prefix):
            return name
    raise ValueError(f"unsupported platform: {system}")


def get_arch(machine: str | None = None) -> str:
    machine = (machine or _platform.machine()).lower()
    try:
        return _ARCHES[machine]
    except KeyError:
        raise ValueError(f"unsupported arch: {machine}") from None


def is_windows(system: str | None = None) -> bool:
    return (system or sys.platform).startswith("win")


def get_exe(system: str | None = None) -> str:
    """Executable name of the toolchain binary on *system*."""
    if is_windows(system):
        return f"{TOOL_NAME}.exe"
    return TOOL_NAME
