"""
modules/tool_usage/time_tool.py
---------------------------------
Arithmetic tool: conversions between "HH:MM" strings and minutes since
midnight, plus local-date parsing. Local computation only.

Every component of the scheduler works in integer minutes internally and only
formats back to "HH:MM" at the data-model boundary.
"""

from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import Optional

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(value: str) -> int:
    """
    Parse an "HH:MM" string into minutes since midnight.

    Args:
        value: 24-hour time, e.g. "09:30".

    Returns:
        Minutes since midnight (570 for "09:30").
    """
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    """
    Format minutes since midnight as "HH:MM".

    Hours wrap modulo 24 so an activity running past midnight still renders.
    Negative input is floored at "00:00".
    """
    minutes = max(0, int(minutes))
    hours = (minutes // 60) % 24
    return f"{hours:02d}:{minutes % 60:02d}"


def parse_date_local(value: str) -> date:
    """Parse "YYYY-MM-DD" as a calendar date (no timezone shift)."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def add_days(value: str, days: int) -> str:
    """Return the "YYYY-MM-DD" date `days` after `value`."""
    return (parse_date_local(value) + timedelta(days=days)).isoformat()


def days_between(start: str, end: str) -> int:
    """Inclusive day count from start to end (same day -> 1)."""
    return (parse_date_local(end) - parse_date_local(start)).days + 1


def current_time_string(now: Optional[datetime] = None) -> str:
    """Wall-clock "HH:MM". Only used as the service's default clock."""
    now = now or datetime.now()
    return f"{now.hour:02d}:{now.minute:02d}"


def delay_minutes(expected: str, actual: str) -> int:
    """Minutes between an expected and an actual time (negative = early)."""
    return time_to_minutes(actual) - time_to_minutes(expected)
