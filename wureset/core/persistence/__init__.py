"""Run state and audit ledger persistence."""
