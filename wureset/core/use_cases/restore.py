"""
Restore use case — re-apply the last persisted service snapshot.

For manual recovery after a run was killed between suspending and
restoring services. Reads the snapshot written by the last run and
puts every recorded service back, exactly as the RESTORE phase would.
Services recorded as Unknown are skipped with a warning.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from wureset.adapters import default_registry
from wureset.adapters.registry import AdapterRegistry
from wureset.core.config.loader import ConfigError, config_base_dir
from wureset.core.context import RunContext
from wureset.core.engine.orchestrator import (
    Phase,
    PhaseResult,
    RemediationReport,
    write_audit_entry,
)
from wureset.core.engine.services import ServiceStateManager
from wureset.core.observability.logging_config import attach_run_log, detach_run_log
from wureset.core.persistence.audit import AuditWriter
from wureset.core.persistence.state_file import default_state_path, load_state, save_state
from wureset.core.use_cases.run import resolve_config

logger = logging.getLogger(__name__)


@dataclass
class RestoreResult:
    """Result of restoring from the persisted snapshot."""

    report: RemediationReport | None = None
    state_path: Path | None = None
    source_run_id: str = ""
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "state_file": str(self.state_path) if self.state_path else None,
            "source_run_id": self.source_run_id,
            "report": self.report.to_dict() if self.report else None,
        }


def restore_from_state(
    config_path: Path | None = None,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RestoreResult:
    """Restore services from ``<state_dir>/current.json``."""
    result = RestoreResult()

    try:
        config, config_path = resolve_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    base_dir = config_base_dir(config_path)
    state_dir = config.resolved_state_dir(base_dir)
    state_path = default_state_path(state_dir)
    result.state_path = state_path

    state = load_state(state_path)
    if not state.services:
        result.error = f"No service snapshot recorded in {state_path}"
        return result
    result.source_run_id = state.run_id

    ctx = RunContext.create(log_dir=config.resolved_log_dir(base_dir))
    handler = None
    if ctx.log_path is not None:
        try:
            handler = attach_run_log(ctx.log_path)
        except OSError as e:
            logger.error("Cannot open run log %s: %s", ctx.log_path, e)

    try:
        if registry is None:
            registry = default_registry(
                mock_services=list(state.services) if mock_mode else None
            )

        ctx.info(f"Restoring services recorded by run {state.run_id} (phase {state.phase})")
        manager = ServiceStateManager(
            registry,
            ctx,
            settle_seconds=config.settle_seconds,
            stop_timeout=config.stop_timeout,
            command_timeout=config.command_timeout,
            sleep=sleep,
        )
        report = RemediationReport(run_id=ctx.run_id, snapshot=dict(state.services))
        report.phases.append(
            PhaseResult(Phase.RESTORE, "restore", manager.restore(state.services))
        )
        report.phase = Phase.DONE
        result.report = report

        state.completed = True
        state.metadata["restored_by"] = ctx.run_id
        try:
            save_state(state, state_path)
        except OSError as e:
            ctx.error(f"Cannot update state file {state_path}: {e}")

        write_audit_entry(
            report, config, ctx, AuditWriter(state_dir=state_dir), operation_type="restore"
        )
    finally:
        if handler is not None:
            detach_run_log(handler)

    return result
