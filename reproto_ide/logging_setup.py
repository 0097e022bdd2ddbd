"""Logging setup for the CLI and the MCP server.

Coloured, single-line records on stderr (stdout belongs to JSON output
and to the MCP stdio transport), plus an optional rotating plain-text
file log.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from reproto_ide.editor import OUTPUT_LOGGER


class ColorFormatter(logging.Formatter):
    """ANSI-colored log formatter for terminal output."""

    _COLORS = {
        logging.DEBUG:    "\033[36m",     # cyan
        logging.INFO:     "\033[32m",     # green
        logging.WARNING:  "\033[33m",     # yellow
        logging.ERROR:    "\033[31m",     # red
        logging.CRITICAL: "\033[1;31m",   # bold red
    }
    _RESET = "\033[0m"
    _DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self._COLORS.get(record.levelno, "")
        ts = self.formatTime(record, "%H:%M:%S")
        name = record.name.split(".")[-1][:12]
        msg = record.getMessage()
        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"
        return (
            f"{self._DIM}{ts}{self._RESET} "
            f"{color}{record.levelname:<8s}{self._RESET} "
            f"{self._DIM}[{name:>12s}]{self._RESET} "
            f"{color}{msg}{self._RESET}"
        )


class PlainFormatter(logging.Formatter):
    """Plain-text formatter for file logs (no ANSI codes)."""

    def format(self, record: logging.LogRecord) -> str:
        ts = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        name = record.name.split(".")[-1][:12]
        msg = record.getMessage()
        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"
        return f"{ts} {record.levelname:<8s} [{name:>12s}] {msg}"


def configure_logging(
    level: str = "INFO",
    log_file: str | None = None,
    *,
    color: bool | None = None,
) -> None:
    """Install stderr (and optionally file) handlers on the root logger.

    Safe to call more than once; earlier handlers are replaced.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    if color is None:
        color = sys.stderr.isatty()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ColorFormatter() if color else PlainFormatter())
    handlers: list[logging.Handler] = [handler]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(path),
            maxBytes=10 * 1024 * 1024,  # 10 MB per file
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(PlainFormatter())
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # Compiler output is always shown, whatever the level.
    logging.getLogger(OUTPUT_LOGGER).setLevel(logging.INFO)
    # Quiet noisy transports
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("pygls").setLevel(logging.WARNING)


__all__ = ["ColorFormatter", "PlainFormatter", "configure_logging"]
