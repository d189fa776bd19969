"""
Error taxonomy for a remediation run.

None of these abort a run. They are raised at internal seams and
turned into failed or skipped Receipts at the adapter and manager
boundary, so every item gets its own outcome in the report.
"""

from __future__ import annotations


class RemediationError(Exception):
    """Base class for per-item remediation failures."""


class TransientIOError(RemediationError):
    """A rename or delete was blocked (file in use, permission denied)."""


class UnresolvableServiceError(RemediationError):
    """A service could not be found or its configuration not queried."""


class ConfigurationMismatchError(RemediationError):
    """A service cannot be restored to its recorded startup mode."""
