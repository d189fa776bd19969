"""
Configuration loader — reads wureset.yml into RemediationConfig.

The file is optional: with none present the Windows Update defaults
apply. When a file is present it must be valid; a broken config stops
the CLI before any service or directory is touched.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from wureset.core.models.config import RemediationConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "wureset.yml"


class ConfigError(Exception):
    """Raised when the configuration file is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for wureset.yml starting from the given directory, walking up.

    Returns:
        Path to wureset.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None, search: bool = True) -> RemediationConfig:
    """Load and validate remediation configuration.

    Args:
        path: Explicit path to a config file. If None and ``search`` is
            set, searches upward from the working directory.
        search: Whether to search when no path is given.

    Returns:
        Validated RemediationConfig (defaults when no file is found).

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None and search:
        path = find_config_file()

    if path is None:
        logger.debug("No %s found — using defaults", CONFIG_FILE)
        return RemediationConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "remediation" key or be flat
    data = data.get("remediation", data)

    try:
        config = RemediationConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.info(
        "Loaded config from %s: %d services, %d archive paths",
        path,
        len(config.services),
        len(config.archive_paths),
    )
    return config


def config_base_dir(config_path: Path | None) -> Path:
    """Directory that relative state/log paths are resolved against."""
    return config_path.parent.resolve() if config_path else Path.cwd()
