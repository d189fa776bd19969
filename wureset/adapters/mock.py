"""
In-memory service controller for ``--mock`` runs and the test suite.

Each simulated service has a startup mode and a running flag that the
operations change the way ``sc.exe`` would. Any (operation, service)
pair can be primed to fail with ``set_failure``.
"""

from __future__ import annotations

from dataclasses import dataclass

from wureset.adapters.base import Adapter, ExecutionContext
from wureset.core.errors import UnresolvableServiceError
from wureset.core.models.action import Receipt
from wureset.core.models.service import StartupMode


@dataclass
class MockService:
    mode: StartupMode = StartupMode.MANUAL
    running: bool = False


class MockServiceAdapter(Adapter):
    """Stands in for ``ScServiceAdapter`` under the same adapter name.

    Names are matched case-insensitively. A name that was never added
    fails every operation with ``UnresolvableServiceError``.
    """

    def __init__(
        self,
        services: dict[str, StartupMode] | None = None,
        running: bool = True,
        adapter_name: str = "service",
        available: bool = True,
    ):
        self._name = adapter_name
        self._available = available
        self._services: dict[str, MockService] = {}
        self._failures: dict[tuple[str, str], str] = {}
        self._call_log: list[ExecutionContext] = []
        for service_name, mode in (services or {}).items():
            self.add_service(
                service_name, mode, running=running and mode is not StartupMode.DISABLED
            )

    @property
    def name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return self._available

    # ── Inspection ──────────────────────────────────────────────

    @property
    def call_log(self) -> list[ExecutionContext]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls(self, operation: str | None = None) -> list[tuple[str, str]]:
        """``(operation, service)`` in call order, optionally for one operation."""
        seen = [(c.params["operation"], c.params["service"]) for c in self._call_log]
        return [p for p in seen if operation is None or p[0] == operation]

    def service(self, name: str) -> MockService:
        return self._services[name.lower()]

    # ── Setup ───────────────────────────────────────────────────

    def add_service(self, name: str, mode: StartupMode, running: bool = False) -> None:
        self._services[name.lower()] = MockService(mode=mode, running=running)

    def set_failure(self, operation: str, service: str, error: str = "Mock failure") -> None:
        self._failures[(operation, service.lower())] = error

    def reset(self) -> None:
        self._call_log.clear()
        self._failures.clear()

    # ── Adapter protocol ────────────────────────────────────────

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not context.params.get("service"):
            return False, "Missing required param: 'service'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        operation = context.params.get("operation", "")
        requested = context.params["service"]
        action_id = context.action.id

        primed = self._failures.get((operation, requested.lower()))
        if primed is not None:
            return Receipt.failure(self._name, action_id, primed)

        svc = self._services.get(requested.lower())
        if svc is None:
            return Receipt.failure(
                self._name,
                action_id,
                f"Service not found: {requested}",
                error_class=UnresolvableServiceError.__name__,
            )

        handler = getattr(self, f"_op_{operation}", None)
        if handler is None:
            return Receipt.failure(self._name, action_id, f"Unknown operation: {operation}")
        return handler(svc, context)

    # ── Simulated operations ────────────────────────────────────

    def _op_query(self, svc: MockService, context: ExecutionContext) -> Receipt:
        mode = svc.mode.value
        return Receipt.success(
            self._name, context.action.id, mode, metadata={"mode": mode, "mock": True}
        )

    def _op_state(self, svc: MockService, context: ExecutionContext) -> Receipt:
        state = "RUNNING" if svc.running else "STOPPED"
        return Receipt.success(
            self._name, context.action.id, state, metadata={"state": state, "mock": True}
        )

    def _op_set_mode(self, svc: MockService, context: ExecutionContext) -> Receipt:
        requested = context.params.get("mode", "")
        mode = StartupMode.from_control_value(requested)
        if mode is StartupMode.UNKNOWN:
            return Receipt.failure(
                self._name, context.action.id, f"Invalid startup mode: {requested!r}"
            )
        svc.mode = mode
        return Receipt.success(self._name, context.action.id, mode.value)

    def _op_stop(self, svc: MockService, context: ExecutionContext) -> Receipt:
        svc.running = False
        return Receipt.success(self._name, context.action.id, "STOPPED")

    def _op_start(self, svc: MockService, context: ExecutionContext) -> Receipt:
        if svc.mode is StartupMode.DISABLED:
            return Receipt.failure(
                self._name,
                context.action.id,
                f"Cannot start disabled service {context.params['service']}",
            )
        svc.running = True
        return Receipt.success(self._name, context.action.id, "RUNNING")
