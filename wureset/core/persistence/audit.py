"""
Audit ledger — one NDJSON line per run in ``<state_dir>/audit.ndjson``.

The per-run log says what happened step by step; the ledger is the
index across runs (``wureset history``). Lines are only ever appended.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """Summary of one remediate or restore run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    operation_type: str = ""       # remediate | restore
    dry_run: bool = False

    services: list[str] = Field(default_factory=list)
    archived_paths: list[str] = Field(default_factory=list)
    log_file: str | None = None

    status: str = ""               # ok | partial | failed
    actions_total: int = 0
    actions_succeeded: int = 0
    actions_failed: int = 0
    actions_skipped: int = 0
    duration_ms: int = 0

    errors: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Appends to and reads back the ledger file."""

    def __init__(self, path: Path | None = None, state_dir: Path | None = None):
        if path is None:
            path = (state_dir or Path(".state")) / DEFAULT_AUDIT_FILE
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append ``entry``. A write failure is logged, not raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.error("Cannot append to audit ledger %s: %s", self._path, e)
            return
        logger.debug("Audit: %s %s → %s", entry.operation_type, entry.run_id, entry.status)

    def _entries(self) -> Iterator[AuditEntry]:
        if not self._path.is_file():
            return
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for number, raw in enumerate(f, start=1):
                    if not raw.strip():
                        continue
                    try:
                        yield AuditEntry.model_validate(json.loads(raw))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("%s:%d: skipping unreadable entry (%s)", self._path, number, e)
        except OSError as e:
            logger.error("Cannot read audit ledger %s: %s", self._path, e)

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first."""
        return list(self._entries())

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        """The last ``n`` entries, oldest first."""
        if n <= 0:
            return []
        return list(deque(self._entries(), maxlen=n))

    def entry_count(self) -> int:
        return sum(1 for _ in self._entries())
