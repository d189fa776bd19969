"""
Service controller adapter — Windows services through ``sc.exe``.

Operations:
    query     ``sc.exe qc <name>``            → configured startup mode
    state     ``sc.exe query <name>``         → RUNNING / STOPPED / ...
    set_mode  ``sc.exe config <name> start= <value>``
    stop      ``Stop-Service -Force`` (PowerShell), bounded by a timeout
    start     ``sc.exe start <name>``

Errors from the controller are wrapped into failed receipts. A service
the controller does not know, or whose configuration cannot be parsed,
fails with ``error_class="UnresolvableServiceError"``.
"""

from __future__ import annotations

import logging
import os
import re
import shutil

from wureset.adapters.base import Adapter, ExecutionContext
from wureset.adapters.shell.command import run_command
from wureset.core.errors import UnresolvableServiceError
from wureset.core.models.action import Receipt
from wureset.core.models.service import StartupMode

logger = logging.getLogger(__name__)

# sc.exe error codes
_ERR_SERVICE_DOES_NOT_EXIST = 1060
_ERR_SERVICE_ALREADY_RUNNING = 1056

_START_TYPE_RE = re.compile(r"START_TYPE\s*:\s*(\d+)\s+(\w+)(\s+\(DELAYED\))?")
_STATE_RE = re.compile(r"STATE\s*:\s*(\d+)\s+(\w+)")

_SETTABLE = {"auto", "delayed-auto", "demand", "disabled"}

_OPERATIONS = {"query", "state", "set_mode", "stop", "start"}


def parse_start_type(output: str) -> StartupMode:
    """Map the START_TYPE line of ``sc qc`` output to a StartupMode.

    Boot and system start types have no logical counterpart and map
    to Unknown, like anything unparseable.
    """
    match = _START_TYPE_RE.search(output)
    if not match:
        return StartupMode.UNKNOWN
    code = int(match.group(1))
    if code == 2:
        return StartupMode.AUTOMATIC_DELAYED if match.group(3) else StartupMode.AUTOMATIC
    if code == 3:
        return StartupMode.MANUAL
    if code == 4:
        return StartupMode.DISABLED
    return StartupMode.UNKNOWN


def parse_state(output: str) -> str:
    """Extract the state name (RUNNING, STOPPED, ...) from ``sc query`` output."""
    match = _STATE_RE.search(output)
    return match.group(2) if match else "UNKNOWN"


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class ScServiceAdapter(Adapter):
    """Windows Service Control Manager via ``sc.exe`` and PowerShell.

    Action params:
        operation (str): One of 'query', 'state', 'set_mode', 'stop', 'start'.
        service (str): Service name.
        mode (str): Control value for 'set_mode' (auto, delayed-auto,
            demand, disabled).
        timeout (int): Seconds before the controller call is abandoned.
    """

    def __init__(self, sc_path: str = "sc.exe", powershell_path: str = "powershell.exe"):
        self._sc = sc_path
        self._powershell = powershell_path

    @property
    def name(self) -> str:
        return "service"

    def is_available(self) -> bool:
        return os.name == "nt" and shutil.which(self._sc) is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if operation not in _OPERATIONS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_OPERATIONS))}"
        if not context.params.get("service"):
            return False, "Missing required param: 'service'"
        if operation == "set_mode" and context.params.get("mode") not in _SETTABLE:
            return False, f"Invalid startup mode: {context.params.get('mode')!r}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        service = context.params["service"]
        timeout = int(context.params.get("timeout", 30))
        action_id = context.action.id

        if operation == "query":
            return self._query(service, action_id, timeout)
        if operation == "state":
            return self._state(service, action_id, timeout)
        if operation == "set_mode":
            argv = [self._sc, "config", service, "start=", context.params["mode"]]
            return self._wrap(run_command(argv, self.name, action_id, timeout), service)
        if operation == "stop":
            script = f"Stop-Service -Name {_ps_quote(service)} -Force -ErrorAction Stop"
            argv = [self._powershell, "-NoProfile", "-NonInteractive", "-Command", script]
            return self._wrap(run_command(argv, self.name, action_id, timeout), service)
        # start
        receipt = run_command([self._sc, "start", service], self.name, action_id, timeout)
        if receipt.metadata.get("return_code") == _ERR_SERVICE_ALREADY_RUNNING:
            return Receipt.success(
                adapter=self.name,
                action_id=action_id,
                output=f"{service} already running",
                metadata=receipt.metadata,
            )
        return self._wrap(receipt, service)

    # ── Helpers ─────────────────────────────────────────────────

    def _query(self, service: str, action_id: str, timeout: int) -> Receipt:
        receipt = run_command([self._sc, "qc", service], self.name, action_id, timeout)
        if receipt.failed:
            return self._wrap(receipt, service)

        mode = parse_start_type(receipt.output)
        if mode is StartupMode.UNKNOWN:
            return Receipt.failure(
                adapter=self.name,
                action_id=action_id,
                error=f"Unrecognised START_TYPE for {service}",
                error_class=UnresolvableServiceError.__name__,
                metadata={"stdout": receipt.output},
            )
        return Receipt.success(
            adapter=self.name,
            action_id=action_id,
            output=mode.value,
            metadata={"mode": mode.value},
        )

    def _state(self, service: str, action_id: str, timeout: int) -> Receipt:
        receipt = run_command([self._sc, "query", service], self.name, action_id, timeout)
        if receipt.failed:
            return self._wrap(receipt, service)
        state = parse_state(receipt.output)
        return Receipt.success(
            adapter=self.name,
            action_id=action_id,
            output=state,
            metadata={"state": state},
        )

    def _wrap(self, receipt: Receipt, service: str) -> Receipt:
        """Tag 'service does not exist' failures as unresolvable."""
        if receipt.failed and receipt.metadata.get("return_code") == _ERR_SERVICE_DOES_NOT_EXIST:
            receipt.error_class = UnresolvableServiceError.__name__
            receipt.error = f"Service not found: {service}"
        return receipt
