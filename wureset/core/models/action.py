"""
Action and Receipt models — what the engine asks for, what it gets back.

Every touch of the host (a rename, a ``sc.exe config``) is described
as an Action and answered with a Receipt. Adapters report failures in
the Receipt instead of raising, so one blocked directory or one
missing service becomes a line in the report, not a stopped run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

Outcome = Literal["ok", "skipped", "failed"]


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """One operation for one adapter.

    ``read_only`` actions (queries, enumerations) still execute during
    a dry run; everything else is validated and then skipped.
    """

    id: str                         # "<run_id>:<area>:<item>:<step>"
    adapter: str                    # "filesystem" or "service"
    name: str = ""                  # shown in logs and dry-run output
    params: dict[str, Any] = Field(default_factory=dict)
    read_only: bool = False
    target: str | None = None       # path or service name


class Receipt(BaseModel):
    """Outcome of one Action.

    ``error_class`` carries the name of the remediation error behind a
    failure (``TransientIOError``, ``UnresolvableServiceError``, ...)
    so callers can branch on the kind of failure without exceptions.
    """

    adapter: str
    action_id: str
    status: Outcome = "ok"

    output: str = ""
    error: str | None = None
    error_class: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    # ── Constructors ────────────────────────────────────────────

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **extra: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **extra)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **extra: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **extra)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **extra: Any) -> Receipt:
        """Nothing to do (absent path, dry run, unsettable mode)."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **extra)

    @classmethod
    def from_exception(
        cls, adapter: str, action_id: str, exc: BaseException, **extra: Any
    ) -> Receipt:
        """Failure carrying ``exc``'s message and class name."""
        return cls.failure(
            adapter, action_id, str(exc), error_class=type(exc).__name__, **extra
        )
