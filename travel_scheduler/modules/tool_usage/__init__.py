"""modules/tool_usage: local arithmetic tools (time, distance)."""
