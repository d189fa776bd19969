"""
Adapter registry — routes every Action to the adapter that owns it.

The engine never holds an adapter directly. It hands Actions to the
registry, which also owns the dry-run switch: in a dry run anything
not marked ``read_only`` is validated and then answered with a skip
receipt, so a dry run exercises the same code path as a real one.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from wureset.adapters.base import Adapter, ExecutionContext
from wureset.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Name → adapter table plus the dispatch loop."""

    def __init__(self, dry_run: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    # ── Table ───────────────────────────────────────────────────

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter %r", adapter.name)
        self._adapters[adapter.name] = adapter
        logger.debug("Adapter registered: %r", adapter)

    def unregister(self, name: str) -> None:
        self._adapters.pop(name, None)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return list(self._adapters)

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered adapter (e.g. is sc.exe on PATH)."""
        report: dict[str, dict[str, Any]] = {}
        for name, adapter in self._adapters.items():
            try:
                available = adapter.is_available()
            except Exception as e:
                logger.debug("Availability probe for %s failed: %s", name, e)
                available = False
            report[name] = {
                "name": name,
                "available": available,
                "type": type(adapter).__name__,
            }
        return report

    # ── Dispatch ────────────────────────────────────────────────

    def execute_action(self, action: Action) -> Receipt:
        """Run ``action`` and return its receipt; never raises.

        Order: look up the adapter, validate, short-circuit dry runs,
        execute, stamp the duration.
        """
        started = time.monotonic()
        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                action.adapter, action.id, f"No adapter registered for '{action.adapter}'"
            )

        skip_for_dry_run = self._dry_run and not action.read_only
        context = ExecutionContext(action=action, dry_run=skip_for_dry_run, params=action.params)

        try:
            valid, reason = adapter.validate(context)
        except Exception as e:
            return Receipt.failure(action.adapter, action.id, f"Validation error: {e}")
        if not valid:
            return Receipt.failure(action.adapter, action.id, f"Validation failed: {reason}")

        if skip_for_dry_run:
            return Receipt.skip(
                action.adapter,
                action.id,
                reason=f"[dry-run] Would execute {action.name or action.id}",
                metadata={"dry_run": True},
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            # Adapter broke its never-raise contract
            logger.error("Adapter %s raised on %s: %s", action.adapter, action.id, e)
            receipt = Receipt.from_exception(action.adapter, action.id, e)

        receipt.duration_ms = int((time.monotonic() - started) * 1000)
        return receipt
