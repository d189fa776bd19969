"""Adapters — bindings for the filesystem and the service controller.

Public re-exports for convenient access.
"""

from wureset.adapters.base import Adapter, ExecutionContext
from wureset.adapters.mock import MockServiceAdapter
from wureset.adapters.registry import AdapterRegistry
from wureset.adapters.shell.filesystem import FilesystemAdapter
from wureset.adapters.system.services import ScServiceAdapter

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "FilesystemAdapter",
    "MockServiceAdapter",
    "ScServiceAdapter",
]


def default_registry(
    mock_services: list[str] | None = None,
    dry_run: bool = False,
) -> AdapterRegistry:
    """Registry with the filesystem adapter and a service controller.

    With ``mock_services`` the service controller is an in-memory mock
    holding those services (Manual, running); the filesystem is real.
    """
    from wureset.core.models.service import StartupMode

    registry = AdapterRegistry(dry_run=dry_run)
    registry.register(FilesystemAdapter())
    if mock_services is not None:
        registry.register(
            MockServiceAdapter({name: StartupMode.MANUAL for name in mock_services})
        )
    else:
        registry.register(ScServiceAdapter())
    return registry
