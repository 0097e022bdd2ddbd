"""Version negotiation — probe the toolchain and pick a capability tier.

An undetectable version is not an error: ``detect()`` returns ``None``
and ``select_tier()`` falls back to the configured default tier.
"""

from __future__ import annotations

import logging
import re

from reproto_ide.config import DEFAULT_THRESHOLD, TOOL_NAME
from reproto_ide.contracts import CapabilityTier, Version
from reproto_ide.errors import ToolchainError, VersionUnknown
from reproto_ide.toolchain import ToolchainHandle

logger = logging.getLogger(__name__)

_COMPONENT_SPLIT = re.compile(r"[.\-]")

DEFAULT_THRESHOLD_VERSION = Version.parse(DEFAULT_THRESHOLD)


def parse_version(output: str, tool_name: str = TOOL_NAME) -> Version | None:
    """Parse ``"<name> <major>.<minor>.<patch>[-suffix]"``.

    Returns ``None`` for a wrong tool name, fewer than three components,
    or non-numeric components.
    """
    tokens = output.strip().split()
    if len(tokens) < 2 or tokens[0] != tool_name:
        return None

    components = _COMPONENT_SPLIT.split(tokens[1])
    if len(components) < 3:
        return None

    head = components[:3]
    if not all(c.isascii() and c.isdigit() for c in head):
        return None

    return Version(major=int(head[0]), minor=int(head[1]), patch=int(head[2]))


async def probe(handle: ToolchainHandle, tool_name: str = TOOL_NAME) -> Version:
    """Run ``--version`` and parse it.

    Raises ``VersionUnknown`` when the probe fails or is unparsable.
    """
    try:
        output = await handle.version()
    except ToolchainError as exc:
        raise VersionUnknown(handle.binary_path, str(exc)) from exc

    version = parse_version(output, tool_name)
    if version is None:
        raise VersionUnknown(handle.binary_path, f"unrecognised output {output!r}")
    return version


async def detect(handle: ToolchainHandle, tool_name: str = TOOL_NAME) -> Version | None:
    """Like ``probe()`` but degrades to ``None``; failures are only logged."""
    try:
        version = await probe(handle, tool_name)
    except VersionUnknown as exc:
        logger.warning("[reproto:version] %s", exc)
        return None

    logger.info("[reproto:version] detected `%s` version: %s", handle, version)
    return version


def meets_threshold(version: Version, threshold: Version = DEFAULT_THRESHOLD_VERSION) -> bool:
    """Component-wise comparison: every component must reach the threshold's."""
    return (
        version.major >= threshold.major
        and version.minor >= threshold.minor
        and version.patch >= threshold.patch
    )


def select_tier(
    version: Version | None,
    override: CapabilityTier | None = None,
    default: CapabilityTier = CapabilityTier.SIMPLE,
    threshold: Version = DEFAULT_THRESHOLD_VERSION,
) -> CapabilityTier:
    """Explicit override, else default for unknown versions, else the threshold rule."""
    if override is not None:
        return override

    if version is None:
        logger.info(
            "[reproto:version] no version detected, falling back to default tier: %s",
            default.value,
        )
        return default

    if meets_threshold(version, threshold):
        return CapabilityTier.LANGUAGE_CLIENT
    return CapabilityTier.SIMPLE


__all__ = [
    "DEFAULT_THRESHOLD_VERSION",
    "detect",
    "meets_threshold",
    "parse_version",
    "probe",
    "select_tier",
]
