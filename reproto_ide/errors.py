"""Toolchain error hierarchy.

Every error carries typed fields (not just a message string),
supports ``to_dict()`` for structured logging and the MCP surface,
and has a readable ``__str__``.

Discovery and version errors degrade to defaults, decode errors are
per-line, process and transport errors abort only the current session.
"""

from __future__ import annotations


class ToolchainError(Exception):
    """Base error for all toolchain integration failures."""

    def __init__(self, message: str, *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "message": self.message, **self.detail}

    def __str__(self) -> str:
        return self.message


class DiscoveryFailure(ToolchainError):
    """No candidate path for the toolchain binary exists."""

    def __init__(self, descriptions: list[str]) -> None:
        self.descriptions = list(descriptions)
        super().__init__(
            "usable `reproto` command could not be found",
            detail={"looked_in": self.descriptions},
        )

    def report_lines(self) -> list[str]:
        """Numbered troubleshooting lines, one per discovery source."""
        lines = ["looked in the following places:"]
        lines.extend(f"#{i}: {d}" for i, d in enumerate(self.descriptions))
        return lines


class VersionUnknown(ToolchainError):
    """The version probe failed or its output could not be parsed."""

    def __init__(self, binary: str, reason: str) -> None:
        self.binary = binary
        self.reason = reason
        super().__init__(
            f"failed to detect version of `{binary}`: {reason}",
            detail={"binary": binary, "reason": reason},
        )


class DecodeError(ToolchainError):
    """One line of compiler output is not a valid structured record."""

    def __init__(self, line: str, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(
            f"illegal json on stdout: {reason}",
            detail={"reason": reason, "line_length": len(line)},
        )


class ProcessFailure(ToolchainError):
    """The toolchain exited with a non-zero status."""

    def __init__(
        self,
        command: list[str],
        exit_code: int | None,
        *,
        root: str | None = None,
    ) -> None:
        self.command = list(command)
        self.exit_code = exit_code
        self.root = root or ""
        detail: dict = {"command": self.command, "exit_code": exit_code}
        if root:
            detail["root"] = root
        super().__init__(
            f"command exited with non-zero exit status: {exit_code}",
            detail=detail,
        )


class TransportFailure(ToolchainError):
    """The toolchain could not be spawned or the language client failed to start."""

    def __init__(self, command: list[str], reason: str) -> None:
        self.command = list(command)
        self.reason = reason
        super().__init__(
            f"failed to start `{' '.join(self.command)}`: {reason}",
            detail={"command": self.command, "reason": reason},
        )


class InstallError(ToolchainError):
    """Downloading or extracting a toolchain release failed."""

    def __init__(self, reason: str, *, url: str | None = None) -> None:
        self.reason = reason
        self.url = url or ""
        detail: dict = {"reason": reason}
        if url:
            detail["url"] = url
        super().__init__(f"install failed: {reason}", detail=detail)
