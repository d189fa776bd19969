"""
Run context — the single value describing "which run are we in."

Constructed ONCE per remediation run by the use case that starts it,
then passed explicitly to every component that records actions:

    - CLI:    use_cases/run.py → RunContext.create(...)
    - Tests:  RunContext.create(log_dir=tmp_path, ...)

It owns the run id, the per-run log file path (derived from the
start-of-run timestamp plus a short random suffix, so two runs never
share a file) and the in-memory action log. ``log()`` is the one place
actions are recorded: it appends an ActionLogEntry and forwards the
line to Python logging, which writes it to the console and the run
log file.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from wureset.core.models.state import ActionLogEntry

logger = logging.getLogger("wureset.run")

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def generate_run_id(now: datetime | None = None) -> str:
    """Generate a unique run ID."""
    stamp = (now or datetime.now(UTC)).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{stamp}-{short}"


@dataclass
class RunContext:
    """Process-scoped state of one remediation run."""

    run_id: str
    started_at: str
    log_path: Path | None = None
    dry_run: bool = False
    entries: list[ActionLogEntry] = field(default_factory=list)

    @classmethod
    def create(cls, log_dir: Path | None = None, dry_run: bool = False) -> RunContext:
        now = datetime.now(UTC)
        run_id = generate_run_id(now)
        log_path = log_dir / f"{run_id}.log" if log_dir is not None else None
        return cls(
            run_id=run_id,
            started_at=now.isoformat(),
            log_path=log_path,
            dry_run=dry_run,
        )

    def log(self, message: str, level: str = "INFO") -> None:
        """Record an action and emit it to the console and run log."""
        level = level.upper()
        if level not in _LEVELS:
            level = "INFO"
        prefix = "[dry-run] " if self.dry_run else ""
        entry = ActionLogEntry(level=level, message=f"{prefix}{message}")
        self.entries.append(entry)
        logger.log(_LEVELS[level], entry.message)

    def info(self, message: str) -> None:
        self.log(message, "INFO")

    def warning(self, message: str) -> None:
        self.log(message, "WARNING")

    def error(self, message: str) -> None:
        self.log(message, "ERROR")

    def errors(self) -> list[str]:
        """Messages of every ERROR entry so far."""
        return [e.message for e in self.entries if e.level == "ERROR"]
