"""
``<state_dir>/current.json``: the snapshot a crashed run is recovered from.

The file is replaced atomically (temp file in the same directory, then
``os.replace``), so readers see either the previous snapshot or the
new one, never a torn write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from wureset.core.models.state import RemediationState

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = "current.json"


def default_state_path(state_dir: Path) -> Path:
    return state_dir / DEFAULT_STATE_FILE


def load_state(path: Path) -> RemediationState:
    """Read the snapshot at ``path``.

    A missing, corrupt or unreadable file yields an empty
    ``RemediationState``; the reason is logged.
    """
    if not path.is_file():
        logger.info("No state file at %s; starting fresh", path)
        return RemediationState()

    try:
        state = RemediationState.model_validate_json(path.read_text(encoding="utf-8"))
    except (ValidationError, ValueError, OSError) as e:
        logger.warning("Ignoring unusable state file %s: %s", path, e)
        return RemediationState()

    logger.debug("Loaded state from %s (run %s, phase %s)", path, state.run_id, state.phase)
    return state


def save_state(state: RemediationState, path: Path) -> None:
    """Stamp ``updated_at`` and write ``state`` to ``path`` atomically.

    Raises OSError when the directory or file cannot be written.
    """
    state.touch()
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False)

    fd, scratch = tempfile.mkstemp(dir=path.parent, prefix=".state_", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload + "\n")
        os.replace(scratch, path)
    except BaseException:
        Path(scratch).unlink(missing_ok=True)
        logger.error("Failed to save state to %s", path)
        raise
    logger.debug("State saved to %s (phase %s)", path, state.phase)
