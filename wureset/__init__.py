"""wureset — guided remediation for a stuck Windows Update subsystem."""

__version__ = "0.1.0"
