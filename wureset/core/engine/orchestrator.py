"""
Orchestrator — the fixed remediation sequence.

    INIT → SNAPSHOT_SERVICES → SUSPEND → ARCHIVE (each path)
         → CLEAN_MARKERS → RESTORE → DONE

A linear state machine: no phase is re-entered, nothing is retried,
and DONE is reached whatever failed along the way. Each phase adds a
PhaseResult with one receipt per item; the report's status is derived
from them. The run state file is written after the snapshot and at
every transition, so an interrupted run leaves the original startup
modes and the last phase reached on disk.

A run that finds such an unfinished state keeps the modes it recorded:
the services are most likely still Disabled from the interrupted
suspend, and re-querying them would make Disabled the "original".
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from wureset.adapters.registry import AdapterRegistry
from wureset.core.context import RunContext
from wureset.core.engine.markers import clean_markers
from wureset.core.engine.rotation import archive
from wureset.core.engine.services import ServiceStateManager
from wureset.core.errors import UnresolvableServiceError
from wureset.core.models.action import Receipt
from wureset.core.models.config import RemediationConfig
from wureset.core.models.service import ServiceRecord
from wureset.core.models.state import RemediationState
from wureset.core.persistence.audit import AuditEntry, AuditWriter
from wureset.core.persistence.state_file import load_state, save_state

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """States of the remediation sequence, in order."""

    INIT = "init"
    SNAPSHOT_SERVICES = "snapshot_services"
    SUSPEND = "suspend"
    ARCHIVE = "archive"
    CLEAN_MARKERS = "clean_markers"
    RESTORE = "restore"
    DONE = "done"


@dataclass
class PhaseResult:
    """Receipts produced by one phase."""

    phase: Phase
    label: str
    receipts: list[Receipt] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if any(r.ok for r in self.receipts):
            return "partial"
        return "failed"

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "label": self.label,
            "status": self.status,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


@dataclass
class RemediationReport:
    """Result of one remediation run."""

    run_id: str = ""
    dry_run: bool = False
    phase: Phase = Phase.INIT
    phases: list[PhaseResult] = field(default_factory=list)
    snapshot: dict[str, ServiceRecord] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def receipts(self) -> list[Receipt]:
        return [r for p in self.phases for r in p.receipts]

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.skipped)

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "dry_run": self.dry_run,
            "phase": self.phase.value,
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_ms": self.duration_ms,
            "snapshot": {
                name: record.model_dump(mode="json") for name, record in self.snapshot.items()
            },
            "phases": [p.to_dict() for p in self.phases],
        }


def _snapshot_receipts(records: dict[str, ServiceRecord], run_id: str) -> list[Receipt]:
    receipts = []
    for name, record in records.items():
        action_id = f"{run_id}:service:{name}:query"
        if record.resolved:
            receipts.append(
                Receipt.success(
                    adapter="service",
                    action_id=action_id,
                    output=record.original_startup_mode.value,
                )
            )
        else:
            receipts.append(
                Receipt.failure(
                    adapter="service",
                    action_id=action_id,
                    error=record.error or f"Cannot resolve {name}",
                    error_class=UnresolvableServiceError.__name__,
                )
            )
    return receipts


def unfinished_snapshot(state_path: Path | None) -> RemediationState | None:
    """The persisted state of an interrupted run, if one holds service modes."""
    if state_path is None:
        return None
    previous = load_state(state_path)
    if previous.completed or not previous.run_id:
        return None
    if not any(r.resolved for r in previous.services.values()):
        return None
    return previous


def _carry_forward(
    records: dict[str, ServiceRecord],
    previous: RemediationState,
    ctx: RunContext,
) -> dict[str, ServiceRecord]:
    """Prefer the modes an interrupted run recorded over freshly queried ones."""
    recorded = {
        r.name.lower(): r for r in previous.services.values() if r.resolved
    }
    merged: dict[str, ServiceRecord] = {}
    for name, record in records.items():
        earlier = recorded.pop(name.lower(), None)
        if earlier is None or not record.resolved:
            merged[name] = record
            continue
        if earlier.original_startup_mode is not record.original_startup_mode:
            ctx.warning(
                f"Service {name} is {record.original_startup_mode.value} now; keeping "
                f"{earlier.original_startup_mode.value} recorded by run {previous.run_id}"
            )
        merged[name] = ServiceRecord(name=name, original_startup_mode=earlier.original_startup_mode)

    # Services the interrupted run suspended that are no longer configured
    for earlier in recorded.values():
        ctx.warning(
            f"Service {earlier.name} was suspended by run {previous.run_id}; "
            "restoring it with this run"
        )
        merged[earlier.name] = earlier
    return merged


class _Progress:
    """Tracks the current phase and mirrors it to the state file."""

    def __init__(
        self,
        report: RemediationReport,
        ctx: RunContext,
        state_path: Path | None,
        previous: RemediationState | None = None,
    ):
        self._report = report
        self._ctx = ctx
        self._state_path = state_path
        self._state = RemediationState(run_id=ctx.run_id)
        if previous is not None:
            # Until the new snapshot lands, current.json must still hold the old modes
            self._state.services = dict(previous.services)
            self._state.metadata["resumed_from"] = previous.run_id

    def enter(self, phase: Phase) -> None:
        self._report.phase = phase
        self._ctx.info(f"── {phase.value} ──")
        self._state.phase = phase.value
        self._state.completed = phase is Phase.DONE
        self._persist()

    def record_snapshot(self, records: dict[str, ServiceRecord]) -> None:
        self._state.services = dict(records)
        self._persist()

    def _persist(self) -> None:
        if self._state_path is None or self._ctx.dry_run:
            return
        try:
            save_state(self._state, self._state_path)
        except OSError as e:
            self._ctx.error(f"Cannot write state file {self._state_path}: {e}")


def run_remediation(
    config: RemediationConfig,
    registry: AdapterRegistry,
    ctx: RunContext,
    state_path: Path | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RemediationReport:
    """Run the full remediation sequence once.

    Args:
        config: Services, paths and timings.
        registry: Adapter registry with 'filesystem' and 'service' adapters.
        ctx: The run context; every action is recorded through it.
        state_path: Where to persist the run state (None = don't).
        sleep: Settle-delay function (injectable for tests).

    Returns:
        RemediationReport. Never raises for per-item failures.
    """
    start = time.monotonic()
    report = RemediationReport(run_id=ctx.run_id, dry_run=ctx.dry_run)
    previous = unfinished_snapshot(state_path)
    progress = _Progress(report, ctx, state_path, previous)
    manager = ServiceStateManager(
        registry,
        ctx,
        settle_seconds=config.settle_seconds,
        stop_timeout=config.stop_timeout,
        command_timeout=config.command_timeout,
        sleep=sleep,
    )

    progress.enter(Phase.INIT)
    ctx.info(f"Remediation run {ctx.run_id} started")
    if previous is not None:
        ctx.warning(
            f"Run {previous.run_id} did not finish (last phase: {previous.phase}); "
            "keeping the startup modes it recorded"
        )

    # ── Snapshot ─────────────────────────────────────────────────
    progress.enter(Phase.SNAPSHOT_SERVICES)
    records = manager.snapshot(config.services)
    if previous is not None:
        records = _carry_forward(records, previous, ctx)
    report.snapshot = records
    progress.record_snapshot(records)
    report.phases.append(
        PhaseResult(Phase.SNAPSHOT_SERVICES, "snapshot", _snapshot_receipts(records, ctx.run_id))
    )

    resolved = {name: r for name, r in records.items() if r.resolved}
    for name, record in records.items():
        if not record.resolved:
            ctx.warning(f"Service {name} excluded from suspend and restore")

    # ── Suspend ──────────────────────────────────────────────────
    progress.enter(Phase.SUSPEND)
    report.phases.append(PhaseResult(Phase.SUSPEND, "suspend", manager.suspend(resolved)))

    # ── Archive ──────────────────────────────────────────────────
    progress.enter(Phase.ARCHIVE)
    for base_path in config.resolved_archive_paths():
        result = archive(base_path, config.max_generations, registry, ctx)
        report.phases.append(
            PhaseResult(Phase.ARCHIVE, f"archive:{base_path}", result.receipts)
        )

    # ── Markers ──────────────────────────────────────────────────
    progress.enter(Phase.CLEAN_MARKERS)
    marker_receipts = clean_markers(
        config.resolved_marker_root(), config.marker_suffix, registry, ctx
    )
    report.phases.append(PhaseResult(Phase.CLEAN_MARKERS, "markers", marker_receipts))

    # ── Restore ──────────────────────────────────────────────────
    progress.enter(Phase.RESTORE)
    report.phases.append(PhaseResult(Phase.RESTORE, "restore", manager.restore(resolved)))

    progress.enter(Phase.DONE)
    report.duration_ms = int((time.monotonic() - start) * 1000)
    ctx.info(
        f"Remediation run {ctx.run_id} finished: {report.status} "
        f"({report.succeeded} ok, {report.failed} failed, {report.skipped} skipped)"
    )
    return report


def write_audit_entry(
    report: RemediationReport,
    config: RemediationConfig,
    ctx: RunContext,
    audit_writer: AuditWriter,
    operation_type: str = "remediate",
) -> None:
    """Append the run's summary to the audit ledger."""
    entry = AuditEntry(
        run_id=report.run_id,
        operation_type=operation_type,
        services=list(report.snapshot.keys()),
        archived_paths=(
            [str(p) for p in config.resolved_archive_paths()]
            if operation_type == "remediate"
            else []
        ),
        log_file=str(ctx.log_path) if ctx.log_path else None,
        dry_run=report.dry_run,
        status=report.status,
        actions_total=report.total,
        actions_succeeded=report.succeeded,
        actions_failed=report.failed,
        actions_skipped=report.skipped,
        duration_ms=report.duration_ms,
        errors=ctx.errors(),
    )
    audit_writer.write(entry)
