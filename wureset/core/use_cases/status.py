"""
Status use case — current service modes, rotation chains, last run.

Read-only: queries the service controller and the filesystem, and
reads the persisted run state. Flags an interrupted previous run and
any gaps in a rotation chain, but repairs nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from wureset.adapters import default_registry
from wureset.adapters.registry import AdapterRegistry
from wureset.core.config.loader import ConfigError, config_base_dir
from wureset.core.engine.rotation import ChainReport, inspect_chain
from wureset.core.models.action import Action
from wureset.core.models.config import RemediationConfig
from wureset.core.models.state import RemediationState
from wureset.core.persistence.state_file import default_state_path, load_state
from wureset.core.use_cases.run import resolve_config


@dataclass
class ServiceStatus:
    """Current configuration of one service."""

    name: str
    mode: str = "Unknown"
    state: str = "UNKNOWN"
    error: str | None = None

    def to_dict(self) -> dict:
        return {"name": self.name, "mode": self.mode, "state": self.state, "error": self.error}


@dataclass
class StatusResult:
    """Aggregated remediation status."""

    config: RemediationConfig | None = None
    config_path: Path | None = None
    services: list[ServiceStatus] = field(default_factory=list)
    chains: list[ChainReport] = field(default_factory=list)
    last_run: RemediationState | None = None
    error: str | None = None

    @property
    def interrupted(self) -> bool:
        """Whether the last recorded run never reached its final phase."""
        return bool(self.last_run and self.last_run.run_id and not self.last_run.completed)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["config_path"] = str(self.config_path) if self.config_path else None
        result["services"] = [s.to_dict() for s in self.services]
        result["chains"] = [c.to_dict() for c in self.chains]
        if self.last_run and self.last_run.run_id:
            result["last_run"] = {
                "run_id": self.last_run.run_id,
                "phase": self.last_run.phase,
                "completed": self.last_run.completed,
                "updated_at": self.last_run.updated_at,
            }
        result["interrupted"] = self.interrupted
        return result


def _query(registry: AdapterRegistry, operation: str, name: str) -> tuple[str | None, str | None]:
    receipt = registry.execute_action(
        Action(
            id=f"status:service:{name}:{operation}",
            name=f"{operation} {name}",
            adapter="service",
            params={"operation": operation, "service": name},
            read_only=True,
            target=name,
        )
    )
    if receipt.failed:
        return None, receipt.error
    return receipt.output, None


def get_status(
    config_path: Path | None = None,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
) -> StatusResult:
    """Collect service, chain and last-run status.

    Args:
        config_path: Optional explicit path to wureset.yml.
        mock_mode: If True, query the in-memory service controller.
        registry: Optional pre-configured adapter registry.
    """
    result = StatusResult()

    try:
        config, config_path = resolve_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.config = config
    result.config_path = config_path

    if registry is None:
        registry = default_registry(mock_services=list(config.services) if mock_mode else None)

    for name in config.services:
        status = ServiceStatus(name=name)
        mode, error = _query(registry, "query", name)
        if error:
            status.error = error
        else:
            status.mode = mode or "Unknown"
            state, error = _query(registry, "state", name)
            status.state = state or "UNKNOWN"
            status.error = error
        result.services.append(status)

    for base_path in config.resolved_archive_paths():
        result.chains.append(inspect_chain(base_path, config.max_generations))

    state_dir = config.resolved_state_dir(config_base_dir(config_path))
    result.last_run = load_state(default_state_path(state_dir))
    return result
