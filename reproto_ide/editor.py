"""Editor collaborator — the narrow surface the engine talks back through.

The engine never renders anything itself.  It appends to an output
channel, raises error/info messages, sets a status text, asks whether a
missing toolchain should be installed and forwards ``$/openUrl``.

``LoggingEditor`` implements the protocol on top of ``logging`` and is
what the CLI and the MCP server use.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from reproto_ide.protocol import LineBuffer

OUTPUT_LOGGER = "reproto_ide.output"

logger = logging.getLogger(__name__)


@runtime_checkable
class Editor(Protocol):
    def append(self, text: str) -> None: ...

    def append_line(self, text: str) -> None: ...

    def show_output(self) -> None: ...

    def show_error(self, message: str) -> None: ...

    def show_info(self, message: str) -> None: ...

    def set_status(self, text: str) -> None: ...

    async def confirm_install(self) -> bool: ...

    def open_document(self, uri: str) -> None: ...


class LoggingEditor:
    """Headless editor: output channel and messages go to ``logging``.

    Raw ``append()`` text (compiler stderr) is re-split into lines so each
    log record holds exactly one line.
    """

    def __init__(self, *, auto_install: bool = False) -> None:
        self.auto_install = auto_install
        self.status: str = ""
        self.errors: list[str] = []
        self.opened: list[str] = []
        self._out = logging.getLogger(OUTPUT_LOGGER)
        self._partial = LineBuffer()

    def append(self, text: str) -> None:
        for line in self._partial.append(text):
            self._out.info(line)

    def append_line(self, text: str) -> None:
        tail = self._partial.flush()
        if tail:
            self._out.info(tail)
        self._out.info(text)

    def show_output(self) -> None:
        tail = self._partial.flush()
        if tail:
            self._out.info(tail)

    def show_error(self, message: str) -> None:
        self.errors.append(message)
        logger.error("[reproto] %s", message)

    def show_info(self, message: str) -> None:
        logger.info("[reproto] %s", message)

    def set_status(self, text: str) -> None:
        self.status = text
        logger.info("[reproto:status] %s", text)

    async def confirm_install(self) -> bool:
        return self.auto_install

    def open_document(self, uri: str) -> None:
        self.opened.append(uri)
        logger.info("[reproto] open requested: %s", uri)


__all__ = ["Editor", "LoggingEditor", "OUTPUT_LOGGER"]
