"""NDJSON protocol decoder — compiler stdout to structured records.

The compiler writes one JSON object per line.  Output arrives in
arbitrary chunks, so decoding is split in two layers:

* ``LineBuffer``       chunk → complete lines, keeps the partial tail.
* ``ProtocolDecoder``  line → ``ProtocolRecord`` (or a ``DecodeError``).

Decode errors are *yielded*, never raised, so one bad line cannot end a
session.  Feeding the same bytes in one chunk or in many yields the same
ordered sequence.
"""

from __future__ import annotations

import asyncio
import codecs
import json
from collections.abc import AsyncIterator, Iterator

from pydantic import BaseModel, ValidationError

from reproto_ide.contracts import (
    DiagnosticRecord,
    LogRecord,
    ProtocolRecord,
    SymbolRecord,
    UnknownRecord,
)
from reproto_ide.errors import DecodeError

READ_CHUNK_BYTES: int = 64 * 1024

_RECORD_TYPES: dict[str, type[BaseModel]] = {
    "diagnostics": DiagnosticRecord,
    "symbol": SymbolRecord,
    "log": LogRecord,
}


# ---------------------------------------------------------------------------
# Line buffering
# ---------------------------------------------------------------------------


class LineBuffer:
    """Accumulates chunks and hands back complete lines.

    Bytes are decoded incrementally as UTF-8, so a multi-byte character
    split across two chunks is reassembled correctly.
    """

    __slots__ = ("_pending", "_decoder")

    def __init__(self, encoding: str = "utf-8") -> None:
        self._pending = ""
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")

    def append(self, chunk: str | bytes) -> list[str]:
        """Add *chunk*; return every line it completed (terminators stripped)."""
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(bytes(chunk))
        self._pending += chunk
        if "\n" not in chunk:
            return []
        *lines, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> str:
        """Return and clear the unterminated tail."""
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return tail.rstrip("\r")

    @property
    def pending(self) -> str:
        return self._pending


# ---------------------------------------------------------------------------
# Record decoding
# ---------------------------------------------------------------------------


def decode_line(line: str) -> ProtocolRecord:
    """Parse one NDJSON line.

    Raises
    ------
    DecodeError
        For invalid JSON, a non-object payload, or a known record type
        whose fields do not validate.
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise DecodeError(line, str(exc)) from exc

    if not isinstance(data, dict):
        raise DecodeError(line, f"expected an object, got {type(data).__name__}")

    kind = data.get("type")
    model = _RECORD_TYPES.get(kind) if isinstance(kind, str) else None
    if model is None:
        return UnknownRecord(type=kind if isinstance(kind, str) else None, payload=data)

    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError as exc:
        raise DecodeError(
            line, f"invalid {kind} record ({exc.error_count()} error(s))",
        ) from exc


class ProtocolDecoder:
    """Stateful per-session decoder.  One instance per process stream."""

    __slots__ = ("_lines", "_decoded", "_errors")

    def __init__(self) -> None:
        self._lines = LineBuffer()
        self._decoded = 0
        self._errors = 0

    def feed(self, chunk: str | bytes) -> Iterator[ProtocolRecord | DecodeError]:
        """Yield records for every complete line in *chunk*, in arrival order."""
        for line in self._lines.append(chunk):
            yield from self._decode(line)

    def finish(self) -> Iterator[ProtocolRecord | DecodeError]:
        """Decode a trailing line that was never newline-terminated."""
        yield from self._decode(self._lines.flush())

    def _decode(self, line: str) -> Iterator[ProtocolRecord | DecodeError]:
        if not line.strip():
            return
        try:
            record = decode_line(line)
        except DecodeError as err:
            self._errors += 1
            yield err
            return
        self._decoded += 1
        yield record

    @property
    def decoded(self) -> int:
        return self._decoded

    @property
    def errors(self) -> int:
        return self._errors


async def decode_stream(
    reader: asyncio.StreamReader,
    *,
    decoder: ProtocolDecoder | None = None,
    chunk_size: int = READ_CHUNK_BYTES,
) -> AsyncIterator[ProtocolRecord | DecodeError]:
    """Lazily decode *reader* until EOF."""
    decoder = decoder or ProtocolDecoder()
    while True:
        chunk = await reader.read(chunk_size)
        if not chunk:
            break
        for item in decoder.feed(chunk):
            yield item
    for item in decoder.finish():
        yield item


__all__ = [
    "LineBuffer",
    "ProtocolDecoder",
    "READ_CHUNK_BYTES",
    "decode_line",
    "decode_stream",
]
