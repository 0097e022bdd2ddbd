"""Message router — dispatch decoded records to per-kind handlers.

Classification is by the record's ``type`` discriminant:

    "diagnostics"  → on_diagnostic
    "symbol"       → on_symbol
    "log"          → on_log
    anything else  → ignored

Decode errors are routed to ``on_decode_error`` so they reach the log
sink instead of ending the stream.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from reproto_ide.contracts import (
    DiagnosticRecord,
    LogRecord,
    ProtocolRecord,
    SymbolRecord,
    UnknownRecord,
)
from reproto_ide.errors import DecodeError

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


def _ignore(_item: Any) -> None:
    return None


class MessageRouter:
    """Routes records to handlers; missing handlers drop their records."""

    __slots__ = ("_on_diagnostic", "_on_symbol", "_on_log", "_on_decode_error", "counts")

    def __init__(
        self,
        *,
        on_diagnostic: Callable[[DiagnosticRecord], None] | None = None,
        on_symbol: Callable[[SymbolRecord], None] | None = None,
        on_log: Callable[[LogRecord], None] | None = None,
        on_decode_error: Callable[[DecodeError], None] | None = None,
    ) -> None:
        self._on_diagnostic: Handler = on_diagnostic or _ignore
        self._on_symbol: Handler = on_symbol or _ignore
        self._on_log: Handler = on_log or _ignore
        self._on_decode_error: Handler = on_decode_error or _ignore
        self.counts: dict[str, int] = {
            "diagnostics": 0, "symbol": 0, "log": 0, "unknown": 0, "decode_error": 0,
        }

    def dispatch(self, item: ProtocolRecord | DecodeError) -> None:
        if isinstance(item, DecodeError):
            self.counts["decode_error"] += 1
            logger.warning("[reproto:protocol] %s", item)
            self._on_decode_error(item)
        elif isinstance(item, DiagnosticRecord):
            self.counts["diagnostics"] += 1
            self._on_diagnostic(item)
        elif isinstance(item, SymbolRecord):
            self.counts["symbol"] += 1
            self._on_symbol(item)
        elif isinstance(item, LogRecord):
            self.counts["log"] += 1
            self._on_log(item)
        else:
            self.counts["unknown"] += 1
            kind = item.type if isinstance(item, UnknownRecord) else type(item).__name__
            logger.debug("[reproto:protocol] ignoring record of type %r", kind)

    @property
    def routed(self) -> int:
        """Records handed to a handler (unknown records and decode errors excluded)."""
        return self.counts["diagnostics"] + self.counts["symbol"] + self.counts["log"]


__all__ = ["MessageRouter"]
