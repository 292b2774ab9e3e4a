"""
schemas/schedule.py
-------------------
Dataclass definitions for day schedules: template slots, scheduled activities,
commute edges, warnings, and whole-trip containers.

Invariants carried by these structures:
  - DaySchedule.slots is chronological by scheduled_start.
  - ScheduledActivity.scheduled_end is DERIVED (start + actual_duration); it has
    no independent storage.
  - commute_from_previous on slot i describes the pair (slot i-1, slot i).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from travel_scheduler.modules.tool_usage.time_tool import minutes_to_time, time_to_minutes
from travel_scheduler.schemas.activity import (
    Cost, MealType, ScoredActivity, TimeOfDay, WeatherForecast,
)
from travel_scheduler.schemas.settings import ExperienceSettings


class SlotType(str, Enum):
    ACTIVITY = "activity"
    MEAL     = "meal"
    BREAK    = "break"
    FREE     = "free"


class DayType(str, Enum):
    FULL      = "full"
    ARRIVAL   = "arrival"
    DEPARTURE = "departure"
    TRAVEL    = "travel"


class CommuteMode(str, Enum):
    WALKING = "walking"
    TRANSIT = "transit"
    TAXI    = "taxi"
    MIXED   = "mixed"


class WarningType(str, Enum):
    OVERLAP         = "overlap"
    RUSH            = "rush"
    LONG_COMMUTE    = "long-commute"
    WEATHER         = "weather"
    BOOKING_CONFLICT = "booking-conflict"
    PACE            = "pace"
    LATE_NIGHT      = "late-night"


class WarningSeverity(str, Enum):
    INFO    = "info"
    WARNING = "warning"
    ERROR   = "error"


@dataclass(frozen=True)
class TimeSlot:
    """A named window of a day, eligible to hold at most one activity."""
    id: str
    slot_type: SlotType
    name: str
    start_time: str                     # "HH:MM"
    end_time: str                       # "HH:MM"
    duration_minutes: int
    time_of_day: TimeOfDay
    meal_type: Optional[MealType] = None
    is_flexible: bool = True
    is_required: bool = False


@dataclass
class TransitDetails:
    lines: list[str] = field(default_factory=list)
    transfers: int = 0
    departure_station: str = ""
    arrival_station: str = ""


@dataclass
class CommuteInfo:
    """Directed travel edge between two consecutive scheduled activities."""
    from_activity_id: str
    to_activity_id: str
    duration_minutes: int
    distance_meters: int
    mode: CommuteMode
    transit_details: Optional[TransitDetails] = None
    walking_route: Optional[str] = None


@dataclass
class ScheduledActivity:
    """A filled slot: the chosen activity with concrete times."""
    slot_id: str
    activity: ScoredActivity
    scheduled_start: str                # "HH:MM"
    actual_duration: int                # minutes; may be below recommended
    is_locked: bool = False
    alternatives: list[ScoredActivity] = field(default_factory=list)
    commute_from_previous: Optional[CommuteInfo] = None
    notes: Optional[str] = None

    @property
    def scheduled_end(self) -> str:
        return minutes_to_time(time_to_minutes(self.scheduled_start) + self.actual_duration)

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.scheduled_start)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.actual_duration

    @property
    def commute_minutes(self) -> int:
        return self.commute_from_previous.duration_minutes if self.commute_from_previous else 0

    @property
    def name(self) -> str:
        return self.activity.activity.name


@dataclass
class ScheduleWarning:
    """Advisory only; never blocks an operation."""
    type: WarningType
    severity: WarningSeverity
    message: str
    affected_slots: list[str] = field(default_factory=list)
    suggestion: Optional[str] = None


@dataclass
class DaySchedule:
    """One calendar day of a trip."""
    date: str = ""                      # "YYYY-MM-DD"
    day_number: int = 1
    city: str = ""
    day_type: DayType = DayType.FULL
    slots: list[ScheduledActivity] = field(default_factory=list)
    total_activity_time: int = 0        # minutes
    total_commute_time: int = 0         # minutes
    total_cost: Cost = field(default_factory=Cost)
    neighborhoods_visited: list[str] = field(default_factory=list)
    categories_covered: list[str] = field(default_factory=list)
    weather: Optional[WeatherForecast] = None
    warnings: list[ScheduleWarning] = field(default_factory=list)
    pace_score: int = 50                # 0-100, higher = more packed

    def find_slot(self, slot_id: str) -> Optional[ScheduledActivity]:
        for slot in self.slots:
            if slot.slot_id == slot_id:
                return slot
        return None

    def index_of(self, slot_id: str) -> int:
        for idx, slot in enumerate(self.slots):
            if slot.slot_id == slot_id:
                return idx
        return -1


@dataclass
class TemplateSlot:
    """One entry of a user-supplied fixed day template."""
    time: str                           # "HH:MM"
    duration: int                       # minutes
    activity_id: Optional[str] = None
    activity_category: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class DayTemplate:
    name: str = ""
    slots: list[TemplateSlot] = field(default_factory=list)


@dataclass
class TripSchedule:
    """Full multi-day trip schedule."""
    trip_id: str
    destination: str
    start_date: str
    end_date: str
    days: list[DaySchedule] = field(default_factory=list)
    total_days: int = 0
    cities_visited: list[str] = field(default_factory=list)
    settings: Optional[ExperienceSettings] = None
    created_at: str = ""                # ISO-8601
    last_modified: str = ""
