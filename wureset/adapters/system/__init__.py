"""Operating-system adapters."""
