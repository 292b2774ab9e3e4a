"""
modules/planning/day_builder.py
---------------------------------
Orchestrates one day's schedule and the explicit edits a traveler can make.

Build pipeline:
    SlotTemplateSelector -> ActivityAllocator -> GeographicFlowOptimizer
        -> commute recompute -> ScheduleValidator.summarize

Edit operations (swap, lock, remove, apply template) return a NEW DaySchedule.
An unknown slot id returns the input schedule unchanged.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
import logging
from typing import Optional

from travel_scheduler import config
from travel_scheduler.modules.planning.activity_allocator import ActivityAllocator
from travel_scheduler.modules.planning.geo_optimizer import GeographicFlowOptimizer
from travel_scheduler.modules.planning.schedule_validator import ScheduleValidator
from travel_scheduler.modules.planning.slot_templates import SlotTemplateSelector
from travel_scheduler.modules.tool_usage import time_tool
from travel_scheduler.modules.tool_usage.distance_tool import DistanceTool
from travel_scheduler.schemas.activity import ScoredActivity, WeatherForecast
from travel_scheduler.schemas.schedule import (
    DaySchedule, DayTemplate, DayType, ScheduledActivity, TripSchedule,
)
from travel_scheduler.schemas.settings import ExperienceSettings

logger = logging.getLogger(__name__)


@dataclass
class BuildScheduleRequest:
    destination: str
    date: str
    day_number: int = 1
    day_type: DayType = DayType.FULL
    activities: list[ScoredActivity] = field(default_factory=list)
    restaurants: list[ScoredActivity] = field(default_factory=list)
    weather: Optional[WeatherForecast] = None
    previous_neighborhood: Optional[str] = None     # where the previous day ended


class DayScheduleBuilder:
    """
    Builds and edits DaySchedules for one traveler's ExperienceSettings.
    """

    def __init__(self, settings: ExperienceSettings | None = None):
        self.settings     = settings or ExperienceSettings()
        self.distance     = DistanceTool(self.settings)
        self.templates    = SlotTemplateSelector(self.settings)
        self.allocator    = ActivityAllocator(self.distance)
        self.optimizer    = GeographicFlowOptimizer(self.distance)
        self.validator    = ScheduleValidator(self.settings)

    # ── Build ────────────────────────────────────────────────────────────────

    def build_day_schedule(self, request: BuildScheduleRequest) -> DaySchedule:
        slots = self.templates.select(request.day_type)
        allocation = self.allocator.allocate(
            slots,
            request.activities + request.restaurants,
            request.previous_neighborhood,
        )
        optimized = self.optimizer.optimize(allocation.scheduled)

        schedule = DaySchedule(
            date=request.date,
            day_number=request.day_number,
            city=request.destination,
            day_type=request.day_type,
            weather=request.weather,
        )
        schedule = self.validator.summarize(schedule, self.distance.relink(optimized))
        logger.info(
            "Built day %d (%s, %s): %d activities, pace %d, %d warnings",
            schedule.day_number, schedule.date, schedule.day_type.value,
            len(schedule.slots), schedule.pace_score, len(schedule.warnings),
        )
        return schedule

    def build_quick_day_schedule(
        self,
        destination: str,
        date: str,
        activities: list[ScoredActivity],
        restaurants: list[ScoredActivity],
    ) -> DaySchedule:
        """Single full day, no weather, no carried-over neighborhood."""
        return self.build_day_schedule(BuildScheduleRequest(
            destination=destination,
            date=date,
            activities=activities,
            restaurants=restaurants,
        ))

    def build_trip_schedule(
        self,
        trip_id: str,
        destination: str,
        start_date: str,
        end_date: str,
        activities_by_city: dict[str, list[ScoredActivity]],
        restaurants_by_city: dict[str, list[ScoredActivity]],
        weather_by_date: dict[str, WeatherForecast] | None = None,
    ) -> TripSchedule:
        """
        Build every day from start_date to end_date inclusive.

        The first day is an arrival day and the last a departure day. An
        activity used on an earlier day is not offered again, and each day's
        allocation is seeded with the neighborhood the previous day ended in.
        Only the first comma-separated city of `destination` is planned.
        """
        num_days = time_tool.days_between(start_date, end_date)
        cities = [c.strip() for c in destination.split(",")]
        main_city = cities[0]
        weather_by_date = weather_by_date or {}

        days: list[DaySchedule] = []
        used_ids: set[str] = set()

        for i in range(num_days):
            date_str = time_tool.add_days(start_date, i)
            day_type = DayType.FULL
            if i == 0:
                day_type = DayType.ARRIVAL
            if i == num_days - 1:
                day_type = DayType.DEPARTURE

            previous = days[-1].slots[-1] if days and days[-1].slots else None
            day = self.build_day_schedule(BuildScheduleRequest(
                destination=main_city,
                date=date_str,
                day_number=i + 1,
                day_type=day_type,
                activities=[a for a in activities_by_city.get(main_city, []) if a.activity.id not in used_ids],
                restaurants=[r for r in restaurants_by_city.get(main_city, []) if r.activity.id not in used_ids],
                weather=weather_by_date.get(date_str),
                previous_neighborhood=previous.activity.activity.neighborhood if previous else None,
            ))
            used_ids.update(s.activity.activity.id for s in day.slots)
            days.append(day)

        now = datetime.now().isoformat()
        return TripSchedule(
            trip_id=trip_id,
            destination=destination,
            start_date=start_date,
            end_date=end_date,
            days=days,
            total_days=num_days,
            cities_visited=cities,
            settings=self.settings,
            created_at=now,
            last_modified=now,
        )

    # ── Explicit edits ───────────────────────────────────────────────────────

    def swap_activity(self, schedule: DaySchedule, slot_id: str, new_activity: ScoredActivity) -> DaySchedule:
        """
        Put `new_activity` into the slot. The displaced activity and its old
        alternatives become the new alternatives. The slot ends up unlocked.
        """
        idx = schedule.index_of(slot_id)
        if idx == -1:
            return schedule

        old = schedule.slots[idx]
        alternatives = [
            a for a in [old.activity, *old.alternatives]
            if a.activity.id != new_activity.activity.id
        ][:config.MAX_ALTERNATIVES_PER_SLOT]

        slots = list(schedule.slots)
        slots[idx] = replace(old, activity=new_activity, alternatives=alternatives, is_locked=False)
        logger.info("Swapped %s: %s -> %s", slot_id, old.name, new_activity.activity.name)
        return self.validator.summarize(schedule, self.distance.relink(slots))

    def set_lock(self, schedule: DaySchedule, slot_id: str, locked: bool) -> DaySchedule:
        if schedule.index_of(slot_id) == -1:
            return schedule
        slots = [replace(s, is_locked=locked) if s.slot_id == slot_id else s for s in schedule.slots]
        return replace(schedule, slots=slots)

    def toggle_lock(self, schedule: DaySchedule, slot_id: str) -> DaySchedule:
        slot = schedule.find_slot(slot_id)
        if slot is None:
            return schedule
        return self.set_lock(schedule, slot_id, not slot.is_locked)

    def remove_activity(self, schedule: DaySchedule, slot_id: str) -> DaySchedule:
        if schedule.index_of(slot_id) == -1:
            return schedule
        slots = [s for s in schedule.slots if s.slot_id != slot_id]
        return self.validator.summarize(schedule, self.distance.relink(slots))

    def apply_template(
        self,
        schedule: DaySchedule,
        template: DayTemplate,
        activities: list[ScoredActivity],
        restaurants: list[ScoredActivity],
    ) -> DaySchedule:
        """
        Replace the day's slots with a fixed template. Each template slot is
        filled by exact activity id, else by the first candidate of the
        requested category; unmatched template slots are dropped.
        """
        pool = activities + restaurants
        placed: list[ScheduledActivity] = []

        for entry in template.slots:
            match = None
            if entry.activity_id:
                match = next((a for a in pool if a.activity.id == entry.activity_id), None)
            elif entry.activity_category:
                match = next((a for a in pool if a.activity.category == entry.activity_category), None)
            if match is None:
                continue

            placed.append(ScheduledActivity(
                slot_id=f"template-slot-{len(placed)}",
                activity=match,
                scheduled_start=entry.time,
                actual_duration=entry.duration,
                notes=entry.notes,
            ))

        logger.info("Applied template %r: %d/%d slots placed", template.name, len(placed), len(template.slots))
        return self.validator.summarize(schedule, self.distance.relink(placed))
