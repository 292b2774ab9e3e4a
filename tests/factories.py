"""
Builders for test fixtures.

Every activity sits at the same coordinates unless a test says otherwise, so
commutes relink to 0 minutes and slot times are exactly what the test wrote.
"""

from travel_scheduler.modules.planning.schedule_validator import ScheduleValidator
from travel_scheduler.modules.tool_usage.distance_tool import DistanceTool
from travel_scheduler.schemas.activity import (
    CandidateActivity, Location, MealType, ScoredActivity, TimeOfDay,
)
from travel_scheduler.schemas.schedule import DaySchedule, DayType, ScheduledActivity

ALL_DAY = [TimeOfDay.MORNING, TimeOfDay.AFTERNOON, TimeOfDay.EVENING]


def candidate(
    id: str,
    name: str | None = None,
    category: str = "museum",
    neighborhood: str = "Center",
    lat: float = 0.0,
    lng: float = 0.0,
    duration: int = 60,
    times=None,
    meal_types=None,
    **kwargs,
) -> CandidateActivity:
    return CandidateActivity(
        id=id,
        name=name or id.title(),
        category=category,
        location=Location(lat=lat, lng=lng),
        neighborhood=neighborhood,
        recommended_duration=duration,
        best_time_of_day=list(times or ALL_DAY),
        meal_types=meal_types,
        **kwargs,
    )


def scored(id: str, score: float = 50.0, **kwargs) -> ScoredActivity:
    return ScoredActivity(activity=candidate(id, **kwargs), total_score=score)


def restaurant(id: str, score: float = 50.0, meals=(MealType.LUNCH, MealType.DINNER), **kwargs) -> ScoredActivity:
    kwargs.setdefault("category", "restaurant")
    return scored(id, score, meal_types=list(meals), **kwargs)


def slot(
    slot_id: str,
    start: str,
    duration: int = 60,
    locked: bool = False,
    alternatives=(),
    **kwargs,
) -> ScheduledActivity:
    return ScheduledActivity(
        slot_id=slot_id,
        activity=scored(slot_id, **kwargs),
        scheduled_start=start,
        actual_duration=duration,
        is_locked=locked,
        alternatives=list(alternatives),
    )


def day(*slots: ScheduledActivity, day_type: DayType = DayType.FULL, date: str = "2025-03-10") -> DaySchedule:
    """A summarized DaySchedule with commute edges linked."""
    schedule = DaySchedule(date=date, city="Paris", day_type=day_type)
    return ScheduleValidator().summarize(schedule, DistanceTool().relink(list(slots)))


def starts(schedule: DaySchedule) -> dict[str, str]:
    return {s.slot_id: s.scheduled_start for s in schedule.slots}
