"""
Folder rotation archiver — bounded, backup-preserving renames.

Given a live directory ``D`` and a generation limit ``N``, archiving
moves ``D`` into slot ``D_01`` after shifting every existing slot up by
one and discarding ``D_N``:

    delete D_N          (beyond the retention window, gone for good)
    D_{N-1} -> D_N
    ...
    D_01    -> D_02
    D       -> D_01

Flow:
    plan_rotation (pure) → archive (dispatch each step) → ArchiveResult

Steps run strictly from the oldest slot down, so a rename target has
always been vacated by the step before it and no scratch directory is
needed. The sequence is NOT atomic: a crash between two steps leaves a
partially shifted chain. Re-running is still safe because every step
names a unique source/target pair, and the filesystem adapter refuses
to rename onto an occupied target. A step that fails therefore blocks
the renames that would have overwritten it instead of losing data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from wureset.adapters.registry import AdapterRegistry
from wureset.adapters.shell.filesystem import path_occupied
from wureset.core.context import RunContext
from wureset.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


def slot_path(base: Path, generation: int) -> Path:
    """Path of archived generation ``generation`` (1 = newest) of ``base``."""
    return base.with_name(f"{base.name}_{generation:02d}")


@dataclass(frozen=True)
class RotationStep:
    """One transition in a rotation plan."""

    operation: Literal["remove", "rename"]
    source: Path
    target: Path | None = None

    def describe(self) -> str:
        if self.operation == "remove":
            return f"remove {self.source}"
        return f"rename {self.source} -> {self.target}"


@dataclass
class RotationPlan:
    """Ordered slot transitions for one base path."""

    base_path: Path
    max_generations: int
    steps: list[RotationStep] = field(default_factory=list)

    @property
    def total_steps(self) -> int:
        return len(self.steps)


def plan_rotation(base_path: Path, max_generations: int) -> RotationPlan:
    """Build the rotation steps for ``base_path`` without touching the disk.

    Raises:
        ValueError: If ``max_generations`` is less than 1.
    """
    if max_generations < 1:
        raise ValueError(f"max_generations must be >= 1, got {max_generations}")

    base_path = Path(base_path)
    plan = RotationPlan(base_path=base_path, max_generations=max_generations)

    plan.steps.append(RotationStep("remove", slot_path(base_path, max_generations)))
    for generation in range(max_generations - 1, 0, -1):
        plan.steps.append(
            RotationStep(
                "rename",
                slot_path(base_path, generation),
                slot_path(base_path, generation + 1),
            )
        )
    plan.steps.append(RotationStep("rename", base_path, slot_path(base_path, 1)))
    return plan


@dataclass
class ArchiveResult:
    """Outcome of archiving one base path."""

    base_path: Path
    max_generations: int
    receipts: list[Receipt] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def live_archived(self) -> bool:
        """Whether the live directory was moved into slot 1."""
        return bool(self.receipts) and self.receipts[-1].ok

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if any(r.ok for r in self.receipts):
            return "partial"
        return "failed"

    def to_dict(self) -> dict:
        return {
            "base_path": str(self.base_path),
            "max_generations": self.max_generations,
            "status": self.status,
            "live_archived": self.live_archived,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


def _step_action(plan: RotationPlan, index: int, step: RotationStep, run_id: str) -> Action:
    params: dict = {"operation": step.operation}
    if step.operation == "remove":
        params["path"] = str(step.source)
    else:
        params["source"] = str(step.source)
        params["target"] = str(step.target)
    return Action(
        id=f"{run_id}:archive:{plan.base_path.name}:{index}",
        name=step.describe(),
        adapter="filesystem",
        params=params,
        target=str(step.source),
    )


def archive(
    base_path: Path,
    max_generations: int,
    registry: AdapterRegistry,
    ctx: RunContext,
) -> ArchiveResult:
    """Rotate the numbered backups of ``base_path`` and archive the live directory.

    Every step is dispatched even after a failure: the adapter's
    occupied-target check makes later renames fail rather than
    overwrite, and each outcome lands in the result.
    """
    plan = plan_rotation(base_path, max_generations)
    result = ArchiveResult(base_path=plan.base_path, max_generations=max_generations)
    ctx.info(f"Archiving {plan.base_path} (keeping {max_generations} generations)")

    for index, step in enumerate(plan.steps):
        ctx.info(f"  → {step.describe()}")
        receipt = registry.execute_action(_step_action(plan, index, step, ctx.run_id))
        result.receipts.append(receipt)

        if receipt.ok:
            ctx.info(f"  ✓ {receipt.output}")
        elif receipt.failed:
            ctx.error(f"  ✗ {step.describe()}: {receipt.error}")
        else:
            logger.debug("Skipped %s: %s", step.describe(), receipt.output)

    last = result.receipts[-1]
    if last.skipped and not ctx.dry_run:
        ctx.info(f"Live directory {plan.base_path} not present; nothing archived")
    elif last.ok and path_occupied(plan.base_path):
        ctx.warning(f"{plan.base_path} was recreated while archiving")

    return result


@dataclass
class ChainReport:
    """Which slots of a rotation chain are occupied right now."""

    base_path: Path
    max_generations: int
    live_present: bool = False
    occupied: list[int] = field(default_factory=list)
    overflow: list[int] = field(default_factory=list)

    @property
    def gaps(self) -> list[int]:
        """Empty generations below the highest occupied one."""
        if not self.occupied:
            return []
        top = max(self.occupied)
        return [g for g in range(1, top) if g not in self.occupied]

    def to_dict(self) -> dict:
        return {
            "base_path": str(self.base_path),
            "max_generations": self.max_generations,
            "live_present": self.live_present,
            "occupied": self.occupied,
            "gaps": self.gaps,
            "overflow": self.overflow,
        }


def inspect_chain(base_path: Path, max_generations: int, scan_beyond: int = 3) -> ChainReport:
    """Report occupied slots of ``base_path``; read-only.

    ``overflow`` lists generations above the limit that exist anyway,
    e.g. left behind after the limit was lowered.
    """
    base_path = Path(base_path)
    report = ChainReport(
        base_path=base_path,
        max_generations=max_generations,
        live_present=path_occupied(base_path),
    )
    for generation in range(1, max_generations + scan_beyond + 1):
        if path_occupied(slot_path(base_path, generation)):
            if generation <= max_generations:
                report.occupied.append(generation)
            else:
                report.overflow.append(generation)
    return report
