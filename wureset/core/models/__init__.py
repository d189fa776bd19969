"""
Domain models — Pydantic types for a remediation run.

All models are re-exported here for convenient access:

    from wureset.core.models import Action, Receipt, ServiceRecord, StartupMode
"""

from wureset.core.models.action import Action, Receipt
from wureset.core.models.config import RemediationConfig
from wureset.core.models.service import ServiceRecord, StartupMode
from wureset.core.models.state import ActionLogEntry, RemediationState

__all__ = [
    # action.py
    "Action",
    # state.py
    "ActionLogEntry",
    "Receipt",
    # config.py
    "RemediationConfig",
    "RemediationState",
    # service.py
    "ServiceRecord",
    "StartupMode",
]
