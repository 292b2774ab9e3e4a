"""modules/observability: logging setup."""
