"""
Service state manager — snapshot, suspend and restore services.

    snapshot(names)  → {name: ServiceRecord}   (read-only)
    suspend(names)   → receipts               (disable, then stop)
    restore(records) → receipts               (settle, set mode, start)

Every per-service call is best-effort: a failure is logged and the
next service is handled regardless. Nothing here raises to the caller.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping

from wureset.adapters.registry import AdapterRegistry
from wureset.core.context import RunContext
from wureset.core.errors import ConfigurationMismatchError, UnresolvableServiceError
from wureset.core.models.action import Action, Receipt
from wureset.core.models.service import ServiceRecord, StartupMode

logger = logging.getLogger(__name__)


class ServiceStateManager:
    """Drives the service controller for a fixed, ordered set of services."""

    def __init__(
        self,
        registry: AdapterRegistry,
        ctx: RunContext,
        settle_seconds: float = 2.0,
        stop_timeout: int = 60,
        command_timeout: int = 30,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._registry = registry
        self._ctx = ctx
        self._settle_seconds = settle_seconds
        self._stop_timeout = stop_timeout
        self._command_timeout = command_timeout
        self._sleep = sleep

    # ── Snapshot ────────────────────────────────────────────────

    def snapshot(self, names: Iterable[str]) -> dict[str, ServiceRecord]:
        """Record each service's configured startup mode.

        A service that cannot be resolved is recorded as Unknown with
        the reason, instead of failing the whole snapshot.
        """
        records: dict[str, ServiceRecord] = {}
        for name in names:
            try:
                mode = self._query_mode(name)
            except UnresolvableServiceError as e:
                self._ctx.error(f"Cannot resolve service {name}: {e}")
                records[name] = ServiceRecord(name=name, error=str(e))
                continue
            self._ctx.info(f"Service {name}: startup mode {mode.value}")
            records[name] = ServiceRecord(name=name, original_startup_mode=mode)
        return records

    def _query_mode(self, name: str) -> StartupMode:
        receipt = self._dispatch("query", name, read_only=True)
        if receipt.failed:
            raise UnresolvableServiceError(receipt.error or f"query failed for {name}")
        try:
            mode = StartupMode(receipt.metadata.get("mode", StartupMode.UNKNOWN.value))
        except ValueError:
            mode = StartupMode.UNKNOWN
        if mode is StartupMode.UNKNOWN:
            raise UnresolvableServiceError(f"Unrecognised startup mode for {name}")
        return mode

    # ── Suspend ─────────────────────────────────────────────────

    def suspend(self, names: Iterable[str]) -> list[Receipt]:
        """Set each service to Disabled, then stop it."""
        receipts: list[Receipt] = []
        for name in names:
            self._ctx.info(f"Disabling service {name}")
            receipt = self._dispatch(
                "set_mode", name, mode=StartupMode.DISABLED.control_value()
            )
            receipts.append(receipt)
            self._report(receipt, f"{name} disabled", f"Failed to disable {name}")

            self._ctx.info(f"Stopping service {name}")
            receipt = self._dispatch("stop", name, timeout=self._stop_timeout)
            receipts.append(receipt)
            self._report(receipt, f"{name} stopped", f"Failed to stop {name}")
        return receipts

    # ── Restore ─────────────────────────────────────────────────

    def restore(self, records: Mapping[str, ServiceRecord]) -> list[Receipt]:
        """Put each service back to its recorded startup mode and start it.

        Services recorded as Unknown are skipped with a warning. Services
        recorded as Disabled get their mode back but are not started.
        """
        receipts: list[Receipt] = []
        for name, record in records.items():
            try:
                control_value = record.original_startup_mode.control_value()
            except ConfigurationMismatchError as e:
                self._ctx.warning(f"Not restoring {name}: {e}")
                receipts.append(
                    Receipt.skip(
                        adapter="service",
                        action_id=self._action_id("set_mode", name),
                        reason=str(e),
                        error_class=type(e).__name__,
                    )
                )
                continue

            if self._settle_seconds > 0 and not self._registry.dry_run:
                logger.debug("Settling %.1fs before restoring %s", self._settle_seconds, name)
                self._sleep(self._settle_seconds)

            mode = record.original_startup_mode
            self._ctx.info(f"Restoring service {name} to {mode.value}")
            receipt = self._dispatch("set_mode", name, mode=control_value)
            receipts.append(receipt)
            self._report(receipt, f"{name} set to {mode.value}", f"Failed to restore {name}")

            if mode is StartupMode.DISABLED:
                self._ctx.info(f"Leaving {name} stopped (originally Disabled)")
                continue

            self._ctx.info(f"Starting service {name}")
            receipt = self._dispatch("start", name)
            receipts.append(receipt)
            self._report(receipt, f"{name} started", f"Failed to start {name}")
        return receipts

    # ── Helpers ─────────────────────────────────────────────────

    def _action_id(self, operation: str, name: str) -> str:
        return f"{self._ctx.run_id}:service:{name}:{operation}"

    def _dispatch(
        self,
        operation: str,
        name: str,
        read_only: bool = False,
        timeout: int | None = None,
        **params: str,
    ) -> Receipt:
        action = Action(
            id=self._action_id(operation, name),
            name=f"{operation} {name}",
            adapter="service",
            params={
                "operation": operation,
                "service": name,
                "timeout": timeout or self._command_timeout,
                **params,
            },
            read_only=read_only,
            target=name,
        )
        return self._registry.execute_action(action)

    def _report(self, receipt: Receipt, ok_message: str, fail_message: str) -> None:
        if receipt.ok:
            self._ctx.info(f"  ✓ {ok_message}")
        elif receipt.failed:
            self._ctx.error(f"  ✗ {fail_message}: {receipt.error}")
