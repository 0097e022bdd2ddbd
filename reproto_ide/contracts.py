"""Toolchain contracts — Pydantic models for discovery, protocol records and indices.

Wire records (``DiagnosticRecord``, ``SymbolRecord``, ``LogRecord``) mirror
the NDJSON emitted by ``reproto --output-format json build``.  Consumer
models (``Diagnostic``, ``Symbol``) are what the index hands to the editor.
All models are frozen (immutable after creation).
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class CandidateSource(BaseModel):
    """One discovery rule: where we looked, or why we could not look."""

    model_config = ConfigDict(frozen=True)

    description: str
    path: str | None = Field(
        default=None, description="None when the rule's source is not defined"
    )


class Candidates(BaseModel):
    """Ordered discovery result — descriptions for humans, paths for selection."""

    model_config = ConfigDict(frozen=True)

    sources: tuple[CandidateSource, ...] = ()
    paths: tuple[str, ...] = ()
    explicit: str | None = Field(
        default=None, description="User-configured executable, if any"
    )

    @property
    def descriptions(self) -> list[str]:
        return [s.description for s in self.sources]


# ---------------------------------------------------------------------------
# Version & capability tier
# ---------------------------------------------------------------------------


class Version(BaseModel):
    """A ``major.minor.patch`` toolchain version."""

    model_config = ConfigDict(frozen=True)

    major: int = Field(..., ge=0)
    minor: int = Field(..., ge=0)
    patch: int = Field(..., ge=0)

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse ``"0.3.35"``; raises ``ValueError`` on anything else."""
        parts = text.strip().split(".")
        if len(parts) != 3 or not all(p.isascii() and p.isdigit() for p in parts):
            raise ValueError(f"not a version: {text!r}")
        return cls(major=int(parts[0]), minor=int(parts[1]), patch=int(parts[2]))

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class CapabilityTier(str, enum.Enum):
    """Behavioural mode selected per detected toolchain version."""

    SIMPLE = "simple"
    LANGUAGE_CLIENT = "language-client"


# ---------------------------------------------------------------------------
# Protocol records (one per NDJSON line)
# ---------------------------------------------------------------------------


class Range(BaseModel):
    """Zero-based source range, as emitted by the compiler."""

    model_config = ConfigDict(frozen=True)

    line_start: int = Field(..., ge=0)
    col_start: int = Field(..., ge=0)
    line_end: int = Field(..., ge=0)
    col_end: int = Field(..., ge=0)


class SymbolKind(str, enum.Enum):
    TYPE = "type"
    INTERFACE = "interface"
    ENUM = "enum"
    TUPLE = "tuple"
    SERVICE = "service"


# Editor symbol kind shown for each declaration kind.
EDITOR_SYMBOL_KIND: dict[SymbolKind, str] = {
    SymbolKind.TYPE: "class",
    SymbolKind.INTERFACE: "interface",
    SymbolKind.ENUM: "enum",
    SymbolKind.TUPLE: "array",
    SymbolKind.SERVICE: "class",
}


class DiagnosticRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["diagnostics"] = "diagnostics"
    path: str
    range: Range
    message: str


class SymbolRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["symbol"] = "symbol"
    kind: SymbolKind | None = None
    name: str
    package: str = ""
    path: str
    range: Range

    @field_validator("kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: Any) -> SymbolKind | None:
        # Older compilers emit "Enum"; unknown kinds are kept, just untyped.
        if isinstance(value, SymbolKind) or value is None:
            return value
        try:
            return SymbolKind(str(value).lower())
        except ValueError:
            return None


class LogRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["log"] = "log"
    level: str = "info"
    message: str = ""


class UnknownRecord(BaseModel):
    """A well-formed record with an unrecognised ``type`` discriminant."""

    model_config = ConfigDict(frozen=True)

    type: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


ProtocolRecord = Union[DiagnosticRecord, SymbolRecord, LogRecord, UnknownRecord]


# ---------------------------------------------------------------------------
# Consumer-facing index entries
# ---------------------------------------------------------------------------


def file_uri(path: str, root: str | None = None) -> str:
    """Return the ``file://`` URI for *path*, resolving it against *root* if relative."""
    p = Path(path)
    if not p.is_absolute() and root:
        p = Path(root) / p
    return p.absolute().as_uri()


class Diagnostic(BaseModel):
    """A compiler error attached to a root-relative path."""

    model_config = ConfigDict(frozen=True)

    path: str
    uri: str
    range: Range
    message: str
    severity: Literal["error", "warning", "info", "hint"] = "error"


class Symbol(BaseModel):
    """A declaration reported by a successful build."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: SymbolKind | None = None
    container_name: str = ""
    path: str
    uri: str
    range: Range

    @property
    def editor_kind(self) -> str:
        if self.kind is None:
            return "constant"
        return EDITOR_SYMBOL_KIND[self.kind]


# ---------------------------------------------------------------------------
# Session outcome
# ---------------------------------------------------------------------------


class BuildResult(BaseModel):
    """Summary of one finished build session."""

    model_config = ConfigDict(frozen=True)

    root: str
    exit_code: int | None = Field(..., description="None if the process never reported one")
    diagnostic_count: int = Field(default=0, ge=0)
    symbol_count: int = Field(default=0, ge=0)
    decode_errors: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)
    symbols_committed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


__all__ = [
    "BuildResult",
    "CandidateSource",
    "Candidates",
    "CapabilityTier",
    "Diagnostic",
    "DiagnosticRecord",
    "EDITOR_SYMBOL_KIND",
    "LogRecord",
    "ProtocolRecord",
    "Range",
    "Symbol",
    "SymbolKind",
    "SymbolRecord",
    "UnknownRecord",
    "Version",
    "file_uri",
]
