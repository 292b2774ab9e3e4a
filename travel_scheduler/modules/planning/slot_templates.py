"""
modules/planning/slot_templates.py
------------------------------------
Chooses the ordered list of time slots for one day.

Five fixed templates exist (relaxed / standard / packed / arrival / departure).
The chosen template is clipped to the traveler's [day_start, day_end] window
and then adjusted for trip composition:
  family                  -> drop slots ending after the family curfew
  honeymoon / babymoon    -> drop slots starting before 10:00, then the last slot
  friends-type and others -> unchanged
Travel days get no slots at all.
"""

from __future__ import annotations
import logging

from travel_scheduler import config
from travel_scheduler.modules.tool_usage.time_tool import time_to_minutes
from travel_scheduler.schemas.activity import MealType, TimeOfDay
from travel_scheduler.schemas.schedule import DayType, SlotType, TimeSlot
from travel_scheduler.schemas.settings import ExperienceSettings, PaceMode, TripMode

logger = logging.getLogger(__name__)

# Template rows: (slot_type, name, start, end, duration, time_of_day, meal_type, is_flexible, is_required)
_A, _M = SlotType.ACTIVITY, SlotType.MEAL
_T = TimeOfDay

STANDARD_DAY = [
    (_A, "Morning Activity",     "09:00", "12:00", 180, _T.MORNING,   None,             True,  False),
    (_M, "Lunch",                "12:00", "14:00",  90, _T.AFTERNOON, MealType.LUNCH,   True,  True),
    (_A, "Afternoon Activity 1", "14:00", "16:00", 120, _T.AFTERNOON, None,             True,  False),
    (_A, "Afternoon Activity 2", "16:00", "18:00", 120, _T.AFTERNOON, None,             True,  False),
    (_M, "Dinner",               "18:30", "20:30", 120, _T.EVENING,   MealType.DINNER,  True,  True),
    (_A, "Evening Activity",     "20:30", "22:00",  90, _T.EVENING,   None,             True,  False),
]

RELAXED_DAY = [
    (_A, "Late Morning Activity", "10:00", "12:30", 150, _T.MORNING,   None,            True,  False),
    (_M, "Lunch",                 "12:30", "14:30", 120, _T.AFTERNOON, MealType.LUNCH,  True,  True),
    (_A, "Afternoon Activity",    "15:00", "17:30", 150, _T.AFTERNOON, None,            True,  False),
    (_M, "Dinner",                "18:30", "20:30", 120, _T.EVENING,   MealType.DINNER, True,  True),
]

PACKED_DAY = [
    (_A, "Early Morning",        "08:00", "10:00", 120, _T.EARLY_MORNING, None,            False, False),
    (_A, "Morning Activity 1",   "10:00", "11:30",  90, _T.MORNING,       None,            True,  False),
    (_M, "Quick Lunch",          "11:30", "12:30",  60, _T.AFTERNOON,     MealType.LUNCH,  False, True),
    (_A, "Afternoon Activity 1", "12:30", "14:30", 120, _T.AFTERNOON,     None,            True,  False),
    (_A, "Afternoon Activity 2", "14:30", "16:30", 120, _T.AFTERNOON,     None,            True,  False),
    (_A, "Late Afternoon",       "16:30", "18:30", 120, _T.AFTERNOON,     None,            True,  False),
    (_M, "Dinner",               "18:30", "20:00",  90, _T.EVENING,       MealType.DINNER, True,  True),
    (_A, "Evening Activity",     "20:00", "22:00", 120, _T.EVENING,       None,            True,  False),
    (_A, "Night Activity",       "22:00", "23:30",  90, _T.NIGHT,         None,            True,  False),
]

ARRIVAL_DAY = [
    (_A, "Afternoon Exploration", "15:00", "18:00", 180, _T.AFTERNOON, None,            True, False),
    (_M, "Dinner",                "18:30", "20:30", 120, _T.EVENING,   MealType.DINNER, True, True),
    (_A, "Evening Walk",          "20:30", "22:00",  90, _T.EVENING,   None,            True, False),
]

DEPARTURE_DAY = [
    (_A, "Morning Activity", "09:00", "11:00", 120, _T.MORNING, None,            True, False),
    (_M, "Brunch/Lunch",     "11:00", "12:30",  90, _T.MORNING, MealType.BRUNCH, True, True),
]

_FULL_DAY_BY_PACE = {
    PaceMode.RELAXED:   RELAXED_DAY,
    PaceMode.NORMAL:    STANDARD_DAY,
    PaceMode.AMBITIOUS: PACKED_DAY,
}


class SlotTemplateSelector:
    """Produces the TimeSlot list a day is allocated against."""

    def __init__(self, settings: ExperienceSettings | None = None):
        self.settings = settings or ExperienceSettings()

    def select(self, day_type: DayType) -> list[TimeSlot]:
        """
        Args:
            day_type: full / arrival / departure / travel.

        Returns:
            Ordered slots (possibly empty). Never raises.
        """
        rows = self._template_for(day_type)
        slots = [self._to_slot(idx, row, day_type) for idx, row in enumerate(rows)]
        slots = self._clip_to_day(slots)
        slots = adjust_for_trip_mode(slots, self.settings.trip_mode)
        logger.debug("day_type=%s -> %d slots", day_type.value, len(slots))
        return slots

    def _template_for(self, day_type: DayType) -> list[tuple]:
        if day_type == DayType.TRAVEL:
            return []
        if day_type == DayType.ARRIVAL:
            return ARRIVAL_DAY
        if day_type == DayType.DEPARTURE:
            return DEPARTURE_DAY
        return _FULL_DAY_BY_PACE.get(self.settings.pace.mode, STANDARD_DAY)

    @staticmethod
    def _to_slot(idx: int, row: tuple, day_type: DayType) -> TimeSlot:
        slot_type, name, start, end, duration, tod, meal, flexible, required = row
        return TimeSlot(
            id=f"slot-{idx}-{day_type.value}",
            slot_type=slot_type,
            name=name,
            start_time=start,
            end_time=end,
            duration_minutes=duration,
            time_of_day=tod,
            meal_type=meal,
            is_flexible=flexible,
            is_required=required,
        )

    def _clip_to_day(self, slots: list[TimeSlot]) -> list[TimeSlot]:
        day_start = time_to_minutes(self.settings.pace.day_start)
        day_end = time_to_minutes(self.settings.pace.day_end)
        return [
            s for s in slots
            if time_to_minutes(s.start_time) >= day_start and time_to_minutes(s.end_time) <= day_end
        ]


def adjust_for_trip_mode(slots: list[TimeSlot], trip_mode: TripMode) -> list[TimeSlot]:
    if trip_mode == TripMode.FAMILY:
        curfew = time_to_minutes(config.FAMILY_CURFEW)
        return [s for s in slots if time_to_minutes(s.end_time) <= curfew]

    if trip_mode in (TripMode.HONEYMOON, TripMode.BABYMOON):
        earliest = time_to_minutes(config.ROMANTIC_EARLIEST)
        return [s for s in slots if time_to_minutes(s.start_time) >= earliest][:-1]

    return list(slots)
