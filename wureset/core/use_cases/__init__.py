"""Use cases — one per CLI command."""
