"""Toolchain discovery — ordered candidate resolution and selection.

``resolve()`` is pure: it only reads configuration and an environment
mapping and never touches the filesystem.  ``select()`` performs the
existence checks, first hit wins.

Discovery order::

    #0  reproto.executable (user configuration)
    #1  $REPROTO_HOME/reproto
    #2  $HOME/.local/bin/reproto
    #3  $USERPROFILE/.local/bin/reproto
    #4  every directory in $PATH

Each rule whose source is unset contributes a "... is not defined" note
instead of a candidate, so a failed discovery can be diagnosed.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping

from reproto_ide.config import TOOL_NAME, Settings
from reproto_ide.contracts import Candidates, CandidateSource
from reproto_ide.host import get_exe
from reproto_ide.toolchain import ToolchainHandle

logger = logging.getLogger(__name__)

# (environment variable, path segments below it)
_HOME_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("REPROTO_HOME", ()),
    ("HOME", (".local", "bin")),
    ("USERPROFILE", (".local", "bin")),
)


def resolve(
    settings: Settings,
    environ: Mapping[str, str] | None = None,
    platform: str | None = None,
) -> Candidates:
    """Build the ordered candidate list for *settings* and *environ*."""
    env = os.environ if environ is None else environ
    exe = get_exe(platform)

    sources: list[CandidateSource] = []
    paths: list[str] = []

    if settings.executable:
        sources.append(CandidateSource(
            description="reproto.executable (user configuration)",
            path=settings.executable,
        ))
        paths.append(settings.executable)
    else:
        sources.append(CandidateSource(
            description="reproto.executable (user configuration) is not defined",
        ))

    for var, segments in _HOME_RULES:
        base = env.get(var)
        if base:
            candidate = os.path.join(base, *segments, exe)
            shown = "/".join((f"${var}", *segments, TOOL_NAME))
            sources.append(CandidateSource(description=shown, path=candidate))
            paths.append(candidate)
        else:
            sources.append(CandidateSource(description=f"${var} is not defined"))

    search_path = env.get("PATH")
    if search_path:
        sources.append(CandidateSource(description="$PATH", path=search_path))
        for entry in search_path.split(os.pathsep):
            if entry:
                paths.append(os.path.join(entry, exe))
    else:
        sources.append(CandidateSource(description="$PATH is not defined"))

    return Candidates(
        sources=tuple(sources),
        paths=tuple(paths),
        explicit=settings.executable,
    )


def select(
    candidates: Candidates,
    working_root: str | None = None,
    *,
    exists: Callable[[str], bool] = os.path.isfile,
) -> ToolchainHandle | None:
    """Return a handle for the first usable candidate, or ``None``.

    An explicitly configured executable is trusted as-is and returned
    without checking the filesystem.
    """
    if candidates.explicit:
        logger.debug("[reproto:discovery] using configured executable %s", candidates.explicit)
        return ToolchainHandle(binary_path=candidates.explicit, working_root=working_root)

    for path in candidates.paths:
        if path and exists(path):
            logger.debug("[reproto:discovery] found %s", path)
            return ToolchainHandle(binary_path=path, working_root=working_root)

    logger.debug(
        "[reproto:discovery] no candidate exists (%d checked)", len(candidates.paths),
    )
    return None


__all__ = ["resolve", "select"]
