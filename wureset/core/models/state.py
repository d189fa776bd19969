"""
RemediationState — the persisted record of a run.

Serialized to ``<state_dir>/current.json``. It is written right after
the service snapshot and again at every phase transition, so an
interrupted run leaves behind the original startup modes and the last
phase it reached. ``wureset restore`` reads it back.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from wureset.core.models.service import ServiceRecord


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ActionLogEntry(BaseModel):
    """One line of the run's action log. Ordering is emission order."""

    timestamp: str = Field(default_factory=_now_iso)
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    message: str


class RemediationState(BaseModel):
    """Root state model — serialized to .state/current.json."""

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1

    # ── Identity ─────────────────────────────────────────────────
    run_id: str = ""
    phase: str = ""               # last phase entered
    completed: bool = False

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Snapshot ─────────────────────────────────────────────────
    services: dict[str, ServiceRecord] = Field(default_factory=dict)

    # ── Extensible metadata ──────────────────────────────────────
    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()
