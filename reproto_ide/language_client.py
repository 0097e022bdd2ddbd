"""Language-client tier — hand the toolchain's stdio to a pygls client.

Used when the detected toolchain ships ``reproto language-server``.  The
NDJSON decoder, router and indices are bypassed entirely: diagnostics
and symbols come from the server over the language server protocol.

The only server-to-client extension handled here is ``$/openUrl``, which
is forwarded to ``Editor.open_document``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any

from lsprotocol import types as lsp
from pygls.lsp.client import BaseLanguageClient

from reproto_ide.config import LANGUAGE_ID, VERSION, Settings
from reproto_ide.editor import Editor
from reproto_ide.errors import TransportFailure
from reproto_ide.toolchain import ToolchainHandle

logger = logging.getLogger(__name__)

OPEN_URL = "$/openUrl"


class ServerClient(BaseLanguageClient):
    """pygls client that records when the server process goes away."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.exited = asyncio.Event()
        self.exit_code: int | None = None

    async def server_exit(self, server: asyncio.subprocess.Process) -> None:
        self.exit_code = server.returncode
        logger.info("[reproto:lsp] server exited with status %s", server.returncode)
        self.exited.set()


def server_env(base: dict[str, str] | None = None) -> dict[str, str]:
    """Process environment plus ``RUST_BACKTRACE=1`` for readable server panics."""
    env = dict(os.environ if base is None else base)
    env["RUST_BACKTRACE"] = "1"
    return env


def _param(params: Any, *names: str) -> str | None:
    for name in names:
        if isinstance(params, dict):
            value = params.get(name)
        else:
            value = getattr(params, name, None)
        if value:
            return str(value)
    return None


class ReprotoLanguageClient:
    """Lifecycle wrapper: start, initialize, forward document events, stop."""

    def __init__(
        self,
        handle: ToolchainHandle,
        settings: Settings,
        editor: Editor,
        roots: list[str] | None = None,
    ) -> None:
        self.handle = handle
        self.settings = settings
        self.editor = editor
        self.roots = [os.path.abspath(r) for r in (roots or [])]
        self.client: BaseLanguageClient | None = None
        self.capabilities: lsp.ServerCapabilities | None = None

    @property
    def command(self) -> list[str]:
        return self.handle.command(self.settings.language_server_args())

    def _make_client(self) -> ServerClient:
        client = ServerClient("reproto-ide", VERSION)

        @client.feature(OPEN_URL)
        def _open_url(params: Any) -> None:
            uri = _param(params, "uri", "url")
            if uri is None:
                logger.warning("[reproto:lsp] %s without a uri: %r", OPEN_URL, params)
                return
            self.editor.open_document(uri)

        return client

    async def start(self) -> lsp.InitializeResult:
        """Launch the server and complete the initialize handshake.

        Raises ``TransportFailure`` if the server cannot be spawned, exits
        before answering ``initialize``, does not answer within
        ``settings.init_timeout`` seconds or answers with an error.  The
        server process is stopped before raising.
        """
        command = self.command
        client = self._make_client()
        logger.info("[reproto:lsp] starting %s", " ".join(command))

        try:
            await client.start_io(
                command[0], *command[1:],
                env=server_env(),
                cwd=self.handle.working_root,
            )
        except OSError as exc:
            raise TransportFailure(command, str(exc)) from exc

        folders = [
            lsp.WorkspaceFolder(uri=Path(r).as_uri(), name=Path(r).name)
            for r in self.roots
        ]
        params = lsp.InitializeParams(
            process_id=os.getpid(),
            root_uri=folders[0].uri if folders else None,
            capabilities=lsp.ClientCapabilities(),
            workspace_folders=folders or None,
        )
        try:
            result = await self._handshake(client, command, params)
        except TransportFailure:
            await client.stop()
            raise
        except Exception as exc:
            await client.stop()
            raise TransportFailure(command, f"initialize failed: {exc}") from exc

        client.initialized(lsp.InitializedParams())
        self.client = client
        self.capabilities = result.capabilities
        logger.info("[reproto:lsp] initialized")
        return result

    async def _handshake(
        self,
        client: ServerClient,
        command: list[str],
        params: lsp.InitializeParams,
    ) -> lsp.InitializeResult:
        """``initialize`` raced against server exit and the init timeout."""
        timeout = self.settings.init_timeout
        init = asyncio.ensure_future(client.initialize_async(params))
        exited = asyncio.ensure_future(client.exited.wait())
        try:
            done, _ = await asyncio.wait(
                {init, exited}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (init, exited):
                if not task.done():
                    task.cancel()

        if init in done:
            return init.result()
        if exited in done:
            raise TransportFailure(
                command,
                f"language server exited before initialize (status {client.exit_code})",
            )
        raise TransportFailure(
            command, f"language server did not answer initialize within {timeout:g}s",
        )

    def did_open(self, uri: str, text: str) -> None:
        if self.client is None:
            return
        self.client.text_document_did_open(
            lsp.DidOpenTextDocumentParams(
                text_document=lsp.TextDocumentItem(
                    uri=uri, language_id=LANGUAGE_ID, version=1, text=text,
                )
            )
        )

    def did_save(self, uri: str) -> None:
        if self.client is None:
            return
        self.client.text_document_did_save(
            lsp.DidSaveTextDocumentParams(
                text_document=lsp.TextDocumentIdentifier(uri=uri)
            )
        )

    async def stop(self) -> None:
        """Shutdown/exit handshake, then stop the transport."""
        client, self.client = self.client, None
        if client is None:
            return
        try:
            await client.shutdown_async(None)
            client.exit(None)
        except Exception as exc:
            logger.warning("[reproto:lsp] shutdown failed: %s", exc)
        finally:
            await client.stop()


__all__ = ["OPEN_URL", "ReprotoLanguageClient", "ServerClient", "server_env"]
