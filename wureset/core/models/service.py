"""
Service models — startup modes and snapshot records.

A ServiceRecord is taken once, before anything is changed, and is the
source of truth when the service is put back the way it was.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from wureset.core.errors import ConfigurationMismatchError


class StartupMode(str, Enum):
    """Configured startup policy of a service."""

    AUTOMATIC = "Automatic"
    AUTOMATIC_DELAYED = "AutomaticDelayed"
    MANUAL = "Manual"
    DISABLED = "Disabled"
    UNKNOWN = "Unknown"

    @property
    def settable(self) -> bool:
        return self is not StartupMode.UNKNOWN

    def control_value(self) -> str:
        """The service controller's ``start=`` value for this mode.

        Raises:
            ConfigurationMismatchError: For ``Unknown``, which has no
                settable value and must never be mapped to a default.
        """
        try:
            return _CONTROL_VALUES[self]
        except KeyError:
            raise ConfigurationMismatchError(
                f"Startup mode {self.value} cannot be applied to a service"
            ) from None

    @classmethod
    def from_control_value(cls, value: str) -> StartupMode:
        """Inverse of :meth:`control_value`; unrecognised values map to Unknown."""
        for mode, control in _CONTROL_VALUES.items():
            if control == value:
                return mode
        return cls.UNKNOWN


_CONTROL_VALUES: dict[StartupMode, str] = {
    StartupMode.AUTOMATIC: "auto",
    StartupMode.AUTOMATIC_DELAYED: "delayed-auto",
    StartupMode.MANUAL: "demand",
    StartupMode.DISABLED: "disabled",
}


class ServiceRecord(BaseModel):
    """Snapshot of one service's startup mode, taken before suspension."""

    model_config = ConfigDict(frozen=True)

    name: str
    original_startup_mode: StartupMode = StartupMode.UNKNOWN
    error: str | None = None  # why the mode could not be resolved

    @property
    def resolved(self) -> bool:
        return self.original_startup_mode is not StartupMode.UNKNOWN
