"""Command bodies behind the click tree; each run_* returns an exit code."""
