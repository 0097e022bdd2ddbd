"""reproto editor integration — toolchain discovery, builds and indices.

Public API
----------
Activation::

    Activation, activate, locate,
    activate_simple, activate_language_client,

Configuration::

    Settings, get_settings

Contracts (Pydantic models)::

    CandidateSource, Candidates, Version, CapabilityTier,
    Range, SymbolKind, Diagnostic, Symbol, BuildResult,
    DiagnosticRecord, SymbolRecord, LogRecord, UnknownRecord,

Errors::

    ToolchainError, DiscoveryFailure, VersionUnknown,
    DecodeError, ProcessFailure, TransportFailure, InstallError,

Toolchain::

    ToolchainHandle, resolve, select,
    detect, probe, parse_version, select_tier,

Build protocol::

    LineBuffer, ProtocolDecoder, decode_line, decode_stream,
    MessageRouter,

Builds and indices::

    BuildSession, BuildCoordinator,
    DiagnosticIndex, SymbolIndex, IndexProvider,

Editor surface::

    Editor, LoggingEditor

Language client::

    ReprotoLanguageClient

Installer::

    install, plan_install
"""

from reproto_ide.config import Settings, get_settings
from reproto_ide.contracts import (
    BuildResult,
    CandidateSource,
    Candidates,
    CapabilityTier,
    Diagnostic,
    DiagnosticRecord,
    LogRecord,
    Range,
    Symbol,
    SymbolKind,
    SymbolRecord,
    UnknownRecord,
    Version,
)
from reproto_ide.coordinator import BuildCoordinator
from reproto_ide.discovery import resolve, select
from reproto_ide.editor import Editor, LoggingEditor
from reproto_ide.errors import (
    DecodeError,
    DiscoveryFailure,
    InstallError,
    ProcessFailure,
    ToolchainError,
    TransportFailure,
    VersionUnknown,
)
from reproto_ide.extension import (
    Activation,
    activate,
    activate_language_client,
    activate_simple,
    locate,
)
from reproto_ide.index import DiagnosticIndex, IndexProvider, SymbolIndex
from reproto_ide.install import install, plan_install
from reproto_ide.language_client import ReprotoLanguageClient
from reproto_ide.protocol import LineBuffer, ProtocolDecoder, decode_line, decode_stream
from reproto_ide.router import MessageRouter
from reproto_ide.session import BuildSession
from reproto_ide.toolchain import ToolchainHandle
from reproto_ide.version import detect, parse_version, probe, select_tier

__all__ = [
    # Activation
    "Activation",
    "activate",
    "activate_language_client",
    "activate_simple",
    "locate",
    # Configuration
    "Settings",
    "get_settings",
    # Contracts
    "BuildResult",
    "CandidateSource",
    "Candidates",
    "CapabilityTier",
    "Diagnostic",
    "DiagnosticRecord",
    "LogRecord",
    "Range",
    "Symbol",
    "SymbolKind",
    "SymbolRecord",
    "UnknownRecord",
    "Version",
    # Errors
    "DecodeError",
    "DiscoveryFailure",
    "InstallError",
    "ProcessFailure",
    "ToolchainError",
    "TransportFailure",
    "VersionUnknown",
    # Toolchain
    "ToolchainHandle",
    "detect",
    "parse_version",
    "probe",
    "resolve",
    "select",
    "select_tier",
    # Build protocol
    "LineBuffer",
    "MessageRouter",
    "ProtocolDecoder",
    "decode_line",
    "decode_stream",
    # Builds and indices
    "BuildCoordinator",
    "BuildSession",
    "DiagnosticIndex",
    "IndexProvider",
    "SymbolIndex",
    # Editor surface
    "Editor",
    "LoggingEditor",
    # Language client
    "ReprotoLanguageClient",
    # Installer
    "install",
    "plan_install",
]
