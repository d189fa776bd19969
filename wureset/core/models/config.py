"""
Remediation configuration — loaded from wureset.yml.

Every field has a default aimed at Windows Update, so the tool runs
with no configuration file at all. Paths may contain environment
variables (``%SystemRoot%``, ``$HOME``, ``~``); they are expanded when
read through the ``resolved_*`` helpers.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_SERVICES = ["wuauserv", "cryptSvc", "bits", "msiserver"]

DEFAULT_ARCHIVE_PATHS = [
    r"%SystemRoot%\SoftwareDistribution",
    r"%SystemRoot%\System32\catroot2",
]

DEFAULT_MARKER_ROOT = r"%ProgramData%\Microsoft\Network\Downloader"
DEFAULT_MARKER_SUFFIX = ".dat"


def expand_path(raw: str) -> Path:
    """Expand environment variables and ``~`` in a configured path."""
    return Path(os.path.expanduser(os.path.expandvars(raw)))


class RemediationConfig(BaseModel):
    """What to suspend, archive and clean, and how patiently."""

    services: list[str] = Field(default_factory=lambda: list(DEFAULT_SERVICES))
    archive_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_ARCHIVE_PATHS))
    max_generations: int = Field(default=5, ge=1, le=99)

    marker_root: str = DEFAULT_MARKER_ROOT
    marker_suffix: str = DEFAULT_MARKER_SUFFIX

    settle_seconds: float = Field(default=2.0, ge=0)
    stop_timeout: int = Field(default=60, ge=1)
    command_timeout: int = Field(default=30, ge=1)

    state_dir: str = ".state"
    log_dir: str = ".state/logs"

    @field_validator("services")
    @classmethod
    def _unique_services(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        for name in value:
            key = name.lower()
            if key in seen:
                raise ValueError(f"Service listed twice: {name}")
            seen.add(key)
        return value

    @field_validator("marker_suffix")
    @classmethod
    def _non_empty_suffix(cls, value: str) -> str:
        if not value:
            raise ValueError("marker_suffix must not be empty")
        return value

    def resolved_archive_paths(self) -> list[Path]:
        return [expand_path(p) for p in self.archive_paths]

    def resolved_marker_root(self) -> Path:
        return expand_path(self.marker_root)

    def resolved_state_dir(self, base: Path | None = None) -> Path:
        path = expand_path(self.state_dir)
        if not path.is_absolute() and base is not None:
            path = base / path
        return path

    def resolved_log_dir(self, base: Path | None = None) -> Path:
        path = expand_path(self.log_dir)
        if not path.is_absolute() and base is not None:
            path = base / path
        return path
