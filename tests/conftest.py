"""
Shared test fixtures and configuration.
"""

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from wureset.adapters.mock import MockServiceAdapter
from wureset.adapters.registry import AdapterRegistry
from wureset.adapters.shell.filesystem import FilesystemAdapter
from wureset.core.context import RunContext
from wureset.core.models.service import StartupMode

WU_SERVICES = {
    "wuauserv": StartupMode.MANUAL,
    "cryptSvc": StartupMode.AUTOMATIC,
    "bits": StartupMode.AUTOMATIC_DELAYED,
    "msiserver": StartupMode.MANUAL,
}


@pytest.fixture(autouse=True)
def _isolate_root_logger():
    """Drop console and file handlers a test installed on the root logger."""
    root = logging.getLogger()
    before, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        if h not in before and not type(h).__module__.startswith("_pytest"):
            root.removeHandler(h)
            h.close()
    root.setLevel(level)


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def run_ctx(tmp_path: Path) -> RunContext:
    """A run context logging under tmp_path/logs."""
    return RunContext.create(log_dir=tmp_path / "logs")


@pytest.fixture
def mock_services() -> MockServiceAdapter:
    """Mock service controller seeded with the Windows Update services."""
    return MockServiceAdapter(dict(WU_SERVICES))


@pytest.fixture
def registry(mock_services: MockServiceAdapter) -> AdapterRegistry:
    """Registry with the real filesystem adapter and the mock controller."""
    reg = AdapterRegistry()
    reg.register(FilesystemAdapter())
    reg.register(mock_services)
    return reg


@pytest.fixture
def sleeps() -> list[float]:
    """Collects settle delays; pass ``sleeps.append`` as the sleep function."""
    return []


@pytest.fixture
def make_tree() -> Callable[[Path, dict[str, str]], None]:
    """Create files (relative path → content) under a root."""

    def _make(root: Path, files: dict[str, str]) -> None:
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

    return _make


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Write a wureset.yml whose paths all live inside tmp_path."""

    def _write(**overrides: object) -> Path:
        windows = tmp_path / "Windows"
        values: dict[str, object] = {
            "services": ["wuauserv", "cryptSvc", "bits", "msiserver"],
            "archive_paths": [
                str(windows / "SoftwareDistribution"),
                str(windows / "System32" / "catroot2"),
            ],
            "max_generations": 3,
            "marker_root": str(tmp_path / "ProgramData" / "Downloader"),
            "settle_seconds": 0,
        }
        values.update(overrides)

        lines = ["remediation:"]
        for key, value in values.items():
            if isinstance(value, list):
                lines.append(f"  {key}:" if value else f"  {key}: []")
                lines.extend(f"    - '{item}'" for item in value)
            elif isinstance(value, str):
                lines.append(f"  {key}: '{value}'")
            else:
                lines.append(f"  {key}: {value}")

        config = tmp_path / "wureset.yml"
        config.write_text("\n".join(lines) + "\n")
        return config

    return _write
