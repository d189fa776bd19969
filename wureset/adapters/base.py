"""
Adapter base — the contract every host binding implements.

Two adapters exist: ``filesystem`` (rename, remove, find) and
``service`` (the Windows service controller, or its in-memory mock).
Rotation and service logic only ever see this interface, which is why
the same engine code runs against the mock in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from wureset.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """An Action as handed to an adapter, plus the dry-run decision."""

    action: Action
    dry_run: bool = False
    params: dict[str, Any] = Field(default_factory=dict)


class Adapter(ABC):
    """A binding to one external boundary.

    Implementations answer with a Receipt for every outcome, failures
    included; ``execute`` must not let exceptions escape.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, e.g. ``"filesystem"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Cheap check that the underlying tool can be used here."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check params before anything runs; ``(False, reason)`` on error."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Perform the action."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"
