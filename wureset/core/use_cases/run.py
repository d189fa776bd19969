"""
Run use case — perform the full remediation once.

This is the top-level entry point: it loads config, creates the run
context and its log file, sets up the adapters, runs the orchestrator,
and writes the audit entry. The full vertical slice from invocation to
audited result.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from wureset.adapters import default_registry
from wureset.adapters.registry import AdapterRegistry
from wureset.core.config.loader import ConfigError, config_base_dir, find_config_file, load_config
from wureset.core.context import RunContext
from wureset.core.engine.orchestrator import RemediationReport, run_remediation, write_audit_entry
from wureset.core.models.config import RemediationConfig
from wureset.core.observability.logging_config import attach_run_log, detach_run_log
from wureset.core.persistence.audit import AuditWriter
from wureset.core.persistence.state_file import default_state_path

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of a remediation run."""

    report: RemediationReport | None = None
    config: RemediationConfig | None = None
    config_path: Path | None = None
    log_path: Path | None = None
    state_path: Path | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["config_path"] = str(self.config_path) if self.config_path else None
        result["log_file"] = str(self.log_path) if self.log_path else None
        result["state_file"] = str(self.state_path) if self.state_path else None
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def resolve_config(config_path: Path | None) -> tuple[RemediationConfig, Path | None]:
    """Load the config, searching upward when no path is given.

    Raises:
        ConfigError: If a config file exists but is invalid.
    """
    if config_path is None:
        config_path = find_config_file()
    return load_config(config_path, search=False), config_path


def run_remediation_once(
    config_path: Path | None = None,
    dry_run: bool = False,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """Load configuration and run the remediation sequence.

    Args:
        config_path: Optional explicit path to wureset.yml.
        dry_run: If True, query but change nothing.
        mock_mode: If True, use the in-memory service controller.
        registry: Optional pre-configured adapter registry.
        sleep: Settle-delay function (injectable for tests).

    Returns:
        RunResult with the remediation report.
    """
    result = RunResult()

    # ── Load config ──────────────────────────────────────────────
    try:
        config, config_path = resolve_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.config = config
    result.config_path = config_path
    base_dir = config_base_dir(config_path)
    state_dir = config.resolved_state_dir(base_dir)
    result.state_path = default_state_path(state_dir)

    # ── Run context and log file ─────────────────────────────────
    ctx = RunContext.create(log_dir=config.resolved_log_dir(base_dir), dry_run=dry_run)
    result.log_path = ctx.log_path

    handler = None
    if ctx.log_path is not None:
        try:
            handler = attach_run_log(ctx.log_path)
        except OSError as e:
            logger.error("Cannot open run log %s: %s", ctx.log_path, e)
            result.log_path = None

    try:
        # ── Adapters ─────────────────────────────────────────────
        if registry is None:
            registry = default_registry(
                mock_services=list(config.services) if mock_mode else None,
                dry_run=dry_run,
            )

        # ── Execute ──────────────────────────────────────────────
        report = run_remediation(
            config,
            registry,
            ctx,
            state_path=result.state_path,
            sleep=sleep,
        )
        result.report = report

        # ── Audit ────────────────────────────────────────────────
        write_audit_entry(report, config, ctx, AuditWriter(state_dir=state_dir))
    finally:
        if handler is not None:
            detach_run_log(handler)

    return result
