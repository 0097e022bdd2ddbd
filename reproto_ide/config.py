"""Toolchain integration configuration loaded from environment variables.

Uses ``pydantic-settings`` for env-var loading, type coercion and ``.env``
file support.  Every option is prefixed ``REPROTO_`` in the environment,
e.g. ``REPROTO_EXECUTABLE=/opt/reproto/bin/reproto``.

``REPROTO_HOME`` is *not* a setting: it is a discovery source read by
``reproto_ide.discovery`` straight from the process environment.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reproto_ide.contracts import CapabilityTier, Version

VERSION = "0.1.0"

TOOL_NAME = "reproto"
MANIFEST_NAME = "reproto.toml"
SOURCE_SUFFIX = ".reproto"
LANGUAGE_ID = "reproto"

# First toolchain release shipping ``reproto language-server``.
DEFAULT_THRESHOLD = "0.3.35"

BUILD_ARGS: tuple[str, ...] = ("--output-format", "json", "build")
INIT_ARGS: tuple[str, ...] = ("--output-format", "json", "init")
VERSION_ARGS: tuple[str, ...] = ("--version",)
LANGUAGE_SERVER_ARGS: tuple[str, ...] = ("language-server",)


class Settings(BaseSettings):
    """Editor-facing options.

      executable     explicit path to the binary, skips discovery checks
      type           force a capability tier ("simple" | "language-client")
      debug          pass ``--debug`` to the language server
      log            pass ``--log <path>`` to the language server
    """

    model_config = SettingsConfigDict(
        env_prefix="REPROTO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    executable: str | None = None
    type: Literal["simple", "language-client"] | None = None
    debug: bool = False
    log: str | None = None

    # Seconds the language server gets to answer ``initialize``.
    init_timeout: float = Field(default=30.0, gt=0)

    # Tier used when the version cannot be detected.
    default_type: Literal["simple", "language-client"] = "simple"
    threshold: str = DEFAULT_THRESHOLD

    # Coalesce overlapping builds of the same root into one follow-up build.
    single_flight: bool = False

    log_level: str = Field(default="INFO")
    log_file: str | None = None

    @field_validator("executable", "log", "log_file", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("threshold")
    @classmethod
    def _valid_threshold(cls, value: str) -> str:
        Version.parse(value)
        return value

    @property
    def tier_override(self) -> CapabilityTier | None:
        return CapabilityTier(self.type) if self.type else None

    @property
    def default_tier(self) -> CapabilityTier:
        return CapabilityTier(self.default_type)

    @property
    def threshold_version(self) -> Version:
        return Version.parse(self.threshold)

    def language_server_args(self) -> list[str]:
        """Arguments for ``reproto language-server`` honouring ``debug`` / ``log``."""
        args = list(LANGUAGE_SERVER_ARGS)
        if self.debug:
            args.append("--debug")
        if self.log:
            args.extend(["--log", self.log])
        return args


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings instance (read once from the environment)."""
    return Settings()
