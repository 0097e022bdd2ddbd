"""Toolchain installer — download and unpack the latest reproto release.

Releases live in a public bucket::

    https://storage.googleapis.com/reproto-releases/releases
        first line = latest version
    https://storage.googleapis.com/reproto-releases/reproto-<version>-<platform>-<arch>.tar.gz
        a gzipped tarball holding exactly one member, the executable

Archives are cached under ``$XDG_DATA_HOME/releases`` (default
``~/.local/share/releases``) and the binary lands in ``~/.local/bin``,
which is one of the places discovery looks.
"""

from __future__ import annotations

import logging
import os
import tarfile
from collections.abc import Mapping
from pathlib import Path

import httpx
from pydantic import BaseModel, ConfigDict

from reproto_ide.editor import Editor
from reproto_ide.errors import InstallError
from reproto_ide.host import get_arch, get_exe, get_platform

logger = logging.getLogger(__name__)

HOST = "storage.googleapis.com"
BASE_PATH = "reproto-releases"
BASE_URL = f"https://{HOST}/{BASE_PATH}"
DOWNLOAD_TIMEOUT_S: float = 120.0


class InstallPlan(BaseModel):
    """Where a given release is downloaded to and installed."""

    model_config = ConfigDict(frozen=True)

    version: str
    release: str
    archive_name: str
    archive: Path
    binary: Path
    exe: str


def plan_install(
    version: str,
    environ: Mapping[str, str] | None = None,
    *,
    system: str | None = None,
    machine: str | None = None,
) -> InstallPlan:
    """Compute archive and binary locations for *version*.

    Raises ``InstallError`` if ``$HOME`` is unset or the host is unsupported.
    """
    env = os.environ if environ is None else environ
    home = env.get("HOME")
    if not home:
        raise InstallError("HOME: not an environment variable")

    try:
        release_tuple = f"{version}-{get_platform(system)}-{get_arch(machine)}"
    except ValueError as exc:
        raise InstallError(str(exc)) from exc

    data_home = Path(env.get("XDG_DATA_HOME") or Path(home, ".local", "share"))
    exe = get_exe(system)
    archive_name = f"reproto-{release_tuple}.tar.gz"
    return InstallPlan(
        version=version,
        release=release_tuple,
        archive_name=archive_name,
        archive=data_home / "releases" / archive_name,
        binary=Path(home, ".local", "bin", exe),
        exe=exe,
    )


async def latest_version(client: httpx.AsyncClient) -> str:
    resp = await client.get("/releases")
    resp.raise_for_status()
    first = resp.text.split("\n", 1)[0].strip()
    if not first:
        raise InstallError(f"not a release: {resp.text!r}", url=str(resp.url))
    return first


async def download(client: httpx.AsyncClient, name: str, dest: Path) -> None:
    """Stream ``/<name>`` into *dest*; a partial download never lands at *dest*."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    partial = dest.with_name(dest.name + ".part")
    async with client.stream("GET", f"/{name}") as resp:
        if resp.status_code // 100 != 2:
            raise InstallError(f"bad status code: {resp.status_code}", url=str(resp.url))
        with partial.open("wb") as fh:
            async for chunk in resp.aiter_bytes():
                fh.write(chunk)
    partial.replace(dest)


def extract_binary(archive: Path, exe: str, dest: Path) -> None:
    """Unpack the single executable member of *archive* into *dest*."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(archive, "r:gz") as tar:
        for member in tar.getmembers():
            if os.path.normpath(member.name) != exe or not member.isfile():
                raise InstallError(f"rogue file in archive: {member.name}")
            src = tar.extractfile(member)
            if src is None:
                raise InstallError(f"unreadable archive member: {member.name}")
            with src, dest.open("wb") as out:
                out.write(src.read())
    dest.chmod(0o755)


async def run_install(
    editor: Editor,
    *,
    environ: Mapping[str, str] | None = None,
    client: httpx.AsyncClient | None = None,
    system: str | None = None,
    machine: str | None = None,
) -> Path:
    """Install the latest release and return the binary path.

    Raises ``InstallError`` (or ``httpx.HTTPError``) on failure.
    """
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(
            base_url=BASE_URL,
            headers={"User-Agent": "reproto-ide/1.0"},
            timeout=DOWNLOAD_TIMEOUT_S,
            follow_redirects=True,
        )

    try:
        version = await latest_version(client)
        plan = plan_install(version, environ, system=system, machine=machine)
        editor.append_line(f"install: detected tuple: {plan.release}")

        if not plan.archive.exists():
            editor.append_line(f"install: downloading: {plan.archive}")
            await download(client, plan.archive_name, plan.archive)

        if not plan.binary.exists():
            editor.append_line(f"install: extracting: {plan.binary}")
            extract_binary(plan.archive, plan.exe, plan.binary)
            editor.append_line(f"Wrote binary: {plan.binary}")

        plan.binary.chmod(0o755)
        editor.append_line("install: done!")
        return plan.binary
    finally:
        if owns_client:
            await client.aclose()


async def install(editor: Editor, **kwargs) -> bool:
    """``run_install`` that reports failures to the editor instead of raising."""
    try:
        path = await run_install(editor, **kwargs)
    except (InstallError, httpx.HTTPError, OSError, tarfile.TarError) as exc:
        logger.error("[reproto:install] %s", exc)
        editor.show_error(str(exc))
        return False

    logger.info("[reproto:install] installed %s", path)
    return True


__all__ = [
    "BASE_URL",
    "InstallPlan",
    "download",
    "extract_binary",
    "install",
    "latest_version",
    "plan_install",
    "run_install",
]
