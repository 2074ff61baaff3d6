"""
config/settings.py: Runtime configuration for distributive.

Uses pydantic-settings to load, validate, and type-check the knobs the CLI
and the probes read: default checklist directory, remote checklist cache,
timeouts, worker cap and crash dump location.

Two usage modes:
  Production / CLI:
      cfg = load_settings()                      # reads .env + os.environ
      cfg = load_settings("/etc/distributive.env")

  Tests (isolated: no env file, no os.environ bleed):
      cfg = Settings(CHECK_TIMEOUT_SECONDS=5)
"""
from __future__ import annotations

import os
import re
from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

Verbosity = Literal["panic", "fatal", "error", "warn", "info", "debug"]


class Settings(BaseSettings):
    # Settings() reads only kwargs; load_settings() is the entry point that
    # merges the env file and os.environ and passes them in explicitly.
    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings,)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    VERBOSITY: Verbosity = "warn"

    # -------------------------------------------------------------------------
    # Checklist sources
    # -------------------------------------------------------------------------
    DEFAULT_DIRECTORY: str = "/etc/distributive.d/"
    REMOTE_CHECK_DIR: str = "/var/run/distributive/"
    REMOTE_CHECK_FALLBACK_DIR: str = "./.remote-checks"
    USE_CACHE: bool = True

    # -------------------------------------------------------------------------
    # Timeouts (seconds)
    # -------------------------------------------------------------------------
    HTTP_TIMEOUT_SECONDS: float = 10.0
    DIAL_TIMEOUT_SECONDS: float = 10.0
    COMMAND_TIMEOUT_SECONDS: float = 30.0
    DOCKER_TIMEOUT_SECONDS: float = 10.0
    CPU_SAMPLE_SECONDS: float = 3.0
    # Deadline for a whole checklist. 0 disables it.
    CHECK_TIMEOUT_SECONDS: float = 0.0

    # -------------------------------------------------------------------------
    # Engine
    # -------------------------------------------------------------------------
    MAX_WORKERS: Optional[int] = None
    PANIC_LOG: str = "distributive.panic.log"

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("VERBOSITY", mode="before")
    @classmethod
    def normalise_verbosity(cls, v: str) -> str:
        """Strip whitespace and lower-case; 'warning' is accepted for 'warn'."""
        if not isinstance(v, str):
            raise ValueError("VERBOSITY must be a string")
        v = v.strip().lower()
        return "warn" if v == "warning" else v

    @field_validator("DEFAULT_DIRECTORY", "REMOTE_CHECK_DIR", "REMOTE_CHECK_FALLBACK_DIR", "PANIC_LOG", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v

    @field_validator("MAX_WORKERS", mode="before")
    @classmethod
    def empty_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_limits(self) -> Settings:
        for name in (
            "HTTP_TIMEOUT_SECONDS",
            "DIAL_TIMEOUT_SECONDS",
            "COMMAND_TIMEOUT_SECONDS",
            "DOCKER_TIMEOUT_SECONDS",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.CPU_SAMPLE_SECONDS < 0:
            raise ValueError("CPU_SAMPLE_SECONDS must be >= 0")
        if self.CHECK_TIMEOUT_SECONDS < 0:
            raise ValueError("CHECK_TIMEOUT_SECONDS must be >= 0 (0 disables the deadline)")
        if self.MAX_WORKERS is not None and self.MAX_WORKERS < 1:
            raise ValueError("MAX_WORKERS must be >= 1 when set")
        if not self.PANIC_LOG:
            raise ValueError("PANIC_LOG must name a file")
        return self


def load_settings(env_file: str = ".env") -> Settings:
    """Load and validate settings from an env file + os.environ.

    Parses the env file by hand and merges it with os.environ (os.environ
    wins), then passes only known Settings fields as explicit kwargs. A
    missing env file is not an error.

    Raises:
        ValidationError: if a value has the wrong type or is out of range.
    """
    file_vals: dict[str, str] = {}
    try:
        with open(env_file, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                k, _, v = line.partition("=")
                k = k.strip()
                # Strip inline comments: "debug   # panic | ... | debug" -> "debug"
                v = re.sub(r"\s+#.*$", "", v.strip())
                if k:
                    file_vals[k] = v
    except FileNotFoundError:
        pass
    merged = {**file_vals, **os.environ}  # os.environ wins
    known = {k: v for k, v in merged.items() if k in Settings.model_fields}
    return Settings(**known)
