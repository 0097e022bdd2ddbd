"""Toolchain handle — a resolved binary plus the directory it runs in.

The handle owns no subprocess state: every invocation spawns an
independent process through ``asyncio.create_subprocess_exec``.

Two invocation styles:

* ``execute()``  request/response — capture stdout, fail on non-zero exit.
* ``spawn()``    fire-and-forget streaming — the caller owns the process
  and pumps ``stdout`` / ``stderr`` itself (see ``BuildSession``).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from reproto_ide.config import INIT_ARGS, VERSION_ARGS
from reproto_ide.errors import ProcessFailure, TransportFailure
from reproto_ide.protocol import decode_stream
from reproto_ide.router import MessageRouter

if TYPE_CHECKING:
    from reproto_ide.editor import Editor

logger = logging.getLogger(__name__)


class ToolchainHandle(BaseModel):
    """Immutable reference to a usable toolchain binary."""

    model_config = ConfigDict(frozen=True)

    binary_path: str = Field(..., description="Absolute or PATH-relative binary")
    working_root: str | None = Field(
        default=None, description="Working directory for invocations"
    )

    def command(self, args: Sequence[str]) -> list[str]:
        return [self.binary_path, *args]

    def bind(self, working_root: str | None) -> ToolchainHandle:
        """Same binary, different working directory."""
        return self.model_copy(update={"working_root": working_root})

    # -- invocation ---------------------------------------------------------

    async def spawn(
        self,
        args: Sequence[str],
        *,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> asyncio.subprocess.Process:
        """Start the binary with piped stdout/stderr.

        Raises
        ------
        TransportFailure
            When the process cannot be started at all.
        """
        command = self.command(args)
        try:
            return await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd or self.working_root,
                env=dict(env) if env is not None else None,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise TransportFailure(command, str(exc)) from exc

    async def execute(self, args: Sequence[str]) -> str:
        """Run to completion and return decoded stdout.

        Raises ``ProcessFailure`` on a non-zero exit status.
        """
        proc = await self.spawn(args)
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            logger.debug(
                "[reproto:exec] %s failed: %s",
                " ".join(args), stderr.decode("utf-8", errors="replace").strip(),
            )
            raise ProcessFailure(
                self.command(args), proc.returncode, root=self.working_root,
            )
        return stdout.decode("utf-8", errors="replace")

    async def version(self) -> str:
        """Raw, trimmed output of ``reproto --version``."""
        return (await self.execute(VERSION_ARGS)).strip()

    async def init_project(self, editor: Editor) -> None:
        """Run ``reproto --output-format json init`` and echo its log records.

        Raises ``ProcessFailure`` when the toolchain rejects the init.
        """
        editor.show_output()
        router = MessageRouter(
            on_log=lambda rec: editor.append_line(f"{rec.level}: {rec.message}"),
            on_decode_error=lambda err: editor.append_line(str(err)),
        )

        proc = await self.spawn(INIT_ARGS)

        async def _pump_stderr() -> None:
            async for chunk in proc.stderr:
                editor.append(chunk.decode("utf-8", errors="replace"))

        stderr_task = asyncio.ensure_future(_pump_stderr())
        async for item in decode_stream(proc.stdout):
            router.dispatch(item)
        await stderr_task

        code = await proc.wait()
        if code != 0:
            raise ProcessFailure(self.command(INIT_ARGS), code, root=self.working_root)

    def __str__(self) -> str:
        return self.binary_path


__all__ = ["ToolchainHandle"]
