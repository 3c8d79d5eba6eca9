"""Tasks, assignments and realtime task updates."""
