"""
modules/planning/schedule_validator.py
----------------------------------------
Advisory checks over a finalized slot sequence plus the 0-100 pace score.

Warnings never block anything; they are attached to the DaySchedule so the
caller can surface them.

  overlap       warning   prev end + inbound commute > next start
  rush          info      0 <= idle buffer < 10 min
  long-commute  warning   inbound commute > 45 min
  weather       warning   outdoor + weather-sensitive on a rainy day
                info      same, at < 5 °C or > 35 °C
  pace          warning   relaxed pace with > 360 min of activities
  late-night    info      family / multi-generational trip, activity ends after 21:00

Pace score:
    round(max(0, clamp(activity/600 * 100, 0, 100) - min(20, commute/120 * 20)))
Non-full or empty days score 50.
"""

from __future__ import annotations
from dataclasses import replace
import logging
import math
from typing import Optional

from travel_scheduler import config
from travel_scheduler.modules.tool_usage.time_tool import time_to_minutes
from travel_scheduler.schemas.activity import Cost, WeatherForecast
from travel_scheduler.schemas.schedule import (
    DaySchedule, DayType, ScheduledActivity, ScheduleWarning, WarningSeverity, WarningType,
)
from travel_scheduler.schemas.settings import ExperienceSettings, PaceMode, TripMode

logger = logging.getLogger(__name__)

_FAMILY_MODES = (TripMode.FAMILY, TripMode.MULTI_GENERATIONAL)


def idle_gap(prev: ScheduledActivity, nxt: ScheduledActivity) -> int:
    """Minutes between prev's end (+ the inbound commute of nxt) and nxt's start."""
    return nxt.start_minutes - prev.end_minutes - nxt.commute_minutes


def calculate_pace_score(slots: list[ScheduledActivity], day_type: DayType = DayType.FULL) -> int:
    if day_type != DayType.FULL or not slots:
        return 50
    activity = sum(s.actual_duration for s in slots)
    commute = sum(s.commute_minutes for s in slots)
    return pace_score_from_totals(activity, commute)


def pace_score_from_totals(activity_minutes: int, commute_minutes: int) -> int:
    base = min(100.0, max(0.0, activity_minutes / config.PACE_FULL_DAY_MINUTES * 100))
    penalty = min(
        float(config.PACE_COMMUTE_PENALTY_CAP),
        commute_minutes / config.PACE_COMMUTE_REFERENCE_MINUTES * config.PACE_COMMUTE_PENALTY_CAP,
    )
    return int(math.floor(max(0.0, base - penalty) + 0.5))


class ScheduleValidator:

    def __init__(self, settings: ExperienceSettings | None = None):
        self.settings = settings or ExperienceSettings()

    def generate_warnings(
        self,
        slots: list[ScheduledActivity],
        weather: Optional[WeatherForecast] = None,
    ) -> list[ScheduleWarning]:
        warnings: list[ScheduleWarning] = []
        warnings += self._transition_warnings(slots)
        warnings += self._commute_warnings(slots)
        if weather is not None:
            warnings += self._weather_warnings(slots, weather)
        warnings += self._pace_warnings(slots)
        warnings += self._late_night_warnings(slots)
        return warnings

    # ── Individual checks ────────────────────────────────────────────────────

    def _transition_warnings(self, slots: list[ScheduledActivity]) -> list[ScheduleWarning]:
        out = []
        for prev, nxt in zip(slots, slots[1:]):
            buffer = idle_gap(prev, nxt)
            if buffer < 0:
                out.append(ScheduleWarning(
                    type=WarningType.OVERLAP,
                    severity=WarningSeverity.WARNING,
                    message=f"Not enough time between {prev.name} and {nxt.name}",
                    affected_slots=[prev.slot_id, nxt.slot_id],
                    suggestion=f"Consider shortening {prev.name} or starting {nxt.name} later",
                ))
            elif buffer < config.RUSH_BUFFER_MINUTES:
                out.append(ScheduleWarning(
                    type=WarningType.RUSH,
                    severity=WarningSeverity.INFO,
                    message=f"Tight transition ({buffer} min buffer) between activities",
                    affected_slots=[prev.slot_id, nxt.slot_id],
                ))
        return out

    @staticmethod
    def _commute_warnings(slots: list[ScheduledActivity]) -> list[ScheduleWarning]:
        return [
            ScheduleWarning(
                type=WarningType.LONG_COMMUTE,
                severity=WarningSeverity.WARNING,
                message=f"Long commute ({s.commute_minutes} min) to {s.name}",
                affected_slots=[s.slot_id],
                suggestion="Consider reordering activities or using faster transport",
            )
            for s in slots if s.commute_minutes > config.LONG_COMMUTE_MINUTES
        ]

    @staticmethod
    def _weather_warnings(slots: list[ScheduledActivity], weather: WeatherForecast) -> list[ScheduleWarning]:
        out = []
        rainy = "rain" in weather.condition.lower()
        temp = weather.reference_temperature
        extreme = temp is not None and (temp < config.COLD_LIMIT_C or temp > config.HOT_LIMIT_C)

        for s in slots:
            activity = s.activity.activity
            if not (activity.is_outdoor and activity.weather_sensitive):
                continue
            if rainy:
                out.append(ScheduleWarning(
                    type=WarningType.WEATHER,
                    severity=WarningSeverity.WARNING,
                    message=f"{activity.name} is outdoor and rain is expected",
                    affected_slots=[s.slot_id],
                    suggestion="Have a backup indoor activity ready",
                ))
            if extreme:
                out.append(ScheduleWarning(
                    type=WarningType.WEATHER,
                    severity=WarningSeverity.INFO,
                    message=f"Extreme temperature ({temp}°C) for outdoor activity",
                    affected_slots=[s.slot_id],
                ))
        return out

    def _pace_warnings(self, slots: list[ScheduledActivity]) -> list[ScheduleWarning]:
        total = sum(s.actual_duration for s in slots)
        if self.settings.pace.mode == PaceMode.RELAXED and total > config.RELAXED_MAX_ACTIVITY_MINUTES:
            return [ScheduleWarning(
                type=WarningType.PACE,
                severity=WarningSeverity.WARNING,
                message="Schedule may be too packed for relaxed pace preference",
                suggestion="Consider removing one activity",
            )]
        return []

    def _late_night_warnings(self, slots: list[ScheduledActivity]) -> list[ScheduleWarning]:
        if self.settings.trip_mode not in _FAMILY_MODES:
            return []
        curfew = time_to_minutes(config.FAMILY_CURFEW)
        return [
            ScheduleWarning(
                type=WarningType.LATE_NIGHT,
                severity=WarningSeverity.INFO,
                message=f"{s.name} ends late for a family trip",
                affected_slots=[s.slot_id],
            )
            for s in slots if s.end_minutes > curfew
        ]

    # ── Totals ───────────────────────────────────────────────────────────────

    def summarize(self, schedule: DaySchedule, slots: list[ScheduledActivity] | None = None) -> DaySchedule:
        """
        Return a copy of `schedule` (optionally with new `slots`) whose totals,
        neighborhoods, categories, cost, warnings and pace score are re-derived
        from the slot sequence.
        """
        slots = list(schedule.slots if slots is None else slots)
        return replace(
            schedule,
            slots=slots,
            total_activity_time=sum(s.actual_duration for s in slots),
            total_commute_time=sum(s.commute_minutes for s in slots),
            total_cost=_total_cost(slots),
            neighborhoods_visited=_unique(s.activity.activity.neighborhood for s in slots),
            categories_covered=_unique(s.activity.activity.category for s in slots),
            warnings=self.generate_warnings(slots, schedule.weather),
            pace_score=calculate_pace_score(slots, schedule.day_type),
        )


def _total_cost(slots: list[ScheduledActivity]) -> Cost:
    total = Cost(amount=0.0, currency=config.DEFAULT_CURRENCY)
    for s in slots:
        cost = s.activity.activity.estimated_cost
        if cost:
            # single-currency trips assumed
            total = Cost(amount=total.amount + cost.amount, currency=cost.currency)
    return total


def _unique(values) -> list[str]:
    seen: list[str] = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen
