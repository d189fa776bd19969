"""
Subprocess helper behind the service adapter.

Every ``sc.exe`` and PowerShell invocation goes through ``run_command``
and comes back as a Receipt, never as an exception.
"""

from __future__ import annotations

import logging
import subprocess
import time

from wureset.core.models.action import Receipt

logger = logging.getLogger(__name__)

# No flashing console windows when running under a GUI session
_CREATION_FLAGS = getattr(subprocess, "CREATE_NO_WINDOW", 0)


def run_command(
    argv: list[str],
    adapter: str,
    action_id: str,
    timeout: int = 30,
) -> Receipt:
    """Run ``argv`` (no shell) and describe the result as a Receipt.

    ``output`` is stripped stdout. On a non-zero exit the error is
    stderr, falling back to stdout since ``sc.exe`` prints its
    failures there.
    """
    command = " ".join(argv)
    meta: dict = {"command": command}
    logger.debug("$ %s", command)

    began = time.monotonic()
    try:
        proc = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
            creationflags=_CREATION_FLAGS,
        )
    except subprocess.TimeoutExpired:
        meta["timeout"] = timeout
        return Receipt.failure(adapter, action_id, f"Command timed out after {timeout}s", metadata=meta)
    except OSError as e:
        return Receipt.failure(adapter, action_id, f"Cannot execute {argv[0]}: {e}", metadata=meta)

    took = int((time.monotonic() - began) * 1000)
    stdout, stderr = proc.stdout.strip(), proc.stderr.strip()
    meta["return_code"] = proc.returncode

    if proc.returncode != 0:
        meta["stdout"] = stdout
        reason = stderr or stdout or f"Command exited with code {proc.returncode}"
        return Receipt.failure(adapter, action_id, reason, duration_ms=took, metadata=meta)

    meta["stderr"] = stderr
    return Receipt.success(adapter, action_id, stdout, duration_ms=took, metadata=meta)
