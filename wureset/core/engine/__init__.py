"""Engine — rotation archiver, service state manager, marker cleaner, orchestrator."""
