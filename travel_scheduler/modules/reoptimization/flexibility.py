"""
modules/reoptimization/flexibility.py
---------------------------------------
Per-activity flexibility resolved from the category policy table plus the
slot's booking state. A locked slot counts as a firm booking, as does a
confirmed reservation on the activity.
"""

from __future__ import annotations
from dataclasses import dataclass
import math
import uuid

from travel_scheduler.schemas.schedule import ScheduledActivity
from travel_scheduler.schemas.settings import FlexibilityPolicy


@dataclass(frozen=True)
class ActivityFlexibility:
    can_shorten: bool
    max_shorten_percent: int
    can_skip: bool
    skip_priority: int          # lower = skipped first
    can_defer: bool
    defer_days: int
    has_booking: bool

    def max_shorten_minutes(self, duration: int) -> int:
        if not self.can_shorten:
            return 0
        return math.floor(duration * self.max_shorten_percent / 100)


def activity_flexibility(slot: ScheduledActivity, policy: FlexibilityPolicy | None = None) -> ActivityFlexibility:
    policy = policy or FlexibilityPolicy()
    activity = slot.activity.activity
    booking = activity.booking
    rules = policy.for_category(activity.category or "landmark")
    return ActivityFlexibility(
        can_shorten=rules.can_shorten,
        max_shorten_percent=rules.max_shorten_percent,
        can_skip=rules.can_skip,
        skip_priority=rules.skip_priority,
        can_defer=rules.can_defer,
        defer_days=rules.defer_days,
        has_booking=slot.is_locked or bool(booking and booking.confirmed),
    )


def new_id() -> str:
    return uuid.uuid4().hex
