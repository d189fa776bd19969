"""
Config check use case — validate wureset.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from wureset.core.config.loader import ConfigError, find_config_file, load_config
from wureset.core.models.config import RemediationConfig


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: RemediationConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "services": self.config.services if self.config else [],
            "archive_paths": [str(p) for p in self.config.resolved_archive_paths()]
            if self.config
            else [],
            "max_generations": self.config.max_generations if self.config else None,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate configuration and report issues.

    A missing config file is not an error (defaults apply) but is
    reported as a warning.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    result.config_path = config_path

    try:
        config = load_config(config_path, search=False)
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    result.config = config
    result.valid = True

    if config_path is None:
        result.warnings.append("No wureset.yml found — using built-in defaults")

    if not config.services:
        result.warnings.append("No services configured — nothing will be suspended")

    if not config.archive_paths:
        result.warnings.append("No archive paths configured — nothing will be archived")

    for path in config.resolved_archive_paths():
        if "%" in str(path) or "$" in str(path):
            result.warnings.append(f"Unexpanded variable in archive path: {path}")
        elif not path.parent.is_dir():
            result.warnings.append(f"Parent directory of archive path not found: {path.parent}")

    resolved = [str(p).lower() for p in config.resolved_archive_paths()]
    if len(set(resolved)) != len(resolved):
        result.errors.append("The same archive path is listed more than once")
        result.valid = False

    if not config.resolved_marker_root().is_dir():
        result.warnings.append(f"Marker root not found: {config.resolved_marker_root()}")

    return result
