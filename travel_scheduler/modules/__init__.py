"""modules: planning, reoptimization, tool usage and observability."""
