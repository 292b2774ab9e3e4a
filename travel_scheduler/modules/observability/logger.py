"""
modules/observability/logger.py
---------------------------------
JSON-lines logging for the scheduler and reshuffling engine.

The library never installs handlers on import; an application calls
setup_logging() once at startup.

Usage:
    from travel_scheduler.modules.observability.logger import setup_logging

    setup_logging("DEBUG", "scheduler.jsonl")
    logger.info("reshuffle applied", extra={"context": {"trigger_id": tid}})
"""

from __future__ import annotations
from datetime import datetime, timezone
import json
import logging
from typing import Optional, Union

from travel_scheduler import config

ROOT_LOGGER = "travel_scheduler"


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level":     record.levelname,
            "logger":    record.name,
            "message":   record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(
    level: Union[int, str, None] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the package logger with a JSON console handler and, when
    `log_file` is given, a JSON file handler. Calling it again replaces the
    handlers instead of stacking them.

    Args:
        level:    Level name or number; defaults to config.LOG_LEVEL.
        log_file: Optional path; defaults to config.LOG_FILE (empty = none).

    Returns:
        The configured "travel_scheduler" logger.
    """
    if level is None:
        level = config.LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")
    log_file = log_file if log_file is not None else (config.LOG_FILE or None)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = StructuredFormatter()
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
