"""modules/planning: day schedule construction."""
