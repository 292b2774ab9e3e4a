"""
modules/reoptimization/multi_day.py
-------------------------------------
Repairs that move activities between days of a trip.

  defer_activity_to_day        one unlocked, deferrable slot -> end of another day
  balance_day_workload         push the most skippable slots off overfull days
  emergency_multi_day_reshuffle
                               clear a run of days (locked slots survive) and
                               re-home what was cleared inside each activity's
                               defer window, subject to per-day capacity
  analyze_multi_day_impact     single-day impact widened to the look-ahead days

A moved slot lands `deferred_slot_gap` minutes after the target day's last
slot (or at `deferred_day_start` on an empty day), under an id unique within
that day, and never past midnight. Failures (bad day index, no room left,
unknown / locked / non-deferrable slot) return success=False with the input
schedule untouched.
"""

from __future__ import annotations
from dataclasses import replace
import logging
from typing import Optional

from travel_scheduler.modules.planning.schedule_validator import ScheduleValidator
from travel_scheduler.modules.reoptimization.flexibility import activity_flexibility, new_id
from travel_scheduler.modules.reoptimization.impact_analyzer import ImpactAnalyzer
from travel_scheduler.modules.reoptimization.schedule_mutator import shift_slots, time_shift_changes
from travel_scheduler.modules.tool_usage.distance_tool import DistanceTool
from travel_scheduler.modules.tool_usage.time_tool import MINUTES_PER_DAY, minutes_to_time, time_to_minutes
from travel_scheduler.schemas.reshuffling import (
    CascadeLevel, ChangeType, DeferredActivity, ImpactAnalysis, MultiDayResult,
    MultiDaySchedule, ScheduleChange, TriggerEvent, UserState,
)
from travel_scheduler.schemas.schedule import DaySchedule, ScheduledActivity
from travel_scheduler.schemas.settings import FlexibilityPolicy, ReshuffleConfig

logger = logging.getLogger(__name__)

_END_OF_DAY_STATES = (UserState.SICK, UserState.DONE_FOR_DAY)


class MultiDayReshuffler:

    def __init__(
        self,
        distance_tool: DistanceTool | None = None,
        validator: ScheduleValidator | None = None,
        config: ReshuffleConfig | None = None,
        policy: FlexibilityPolicy | None = None,
    ):
        self.distance  = distance_tool or DistanceTool()
        self.validator = validator or ScheduleValidator(self.distance.settings)
        self.config    = config or ReshuffleConfig()
        self.policy    = policy or FlexibilityPolicy()

    @property
    def day_policy(self):
        return self.config.multi_day

    def _finish(self, day: DaySchedule, slots: list[ScheduledActivity]) -> DaySchedule:
        return self.validator.summarize(day, self.distance.relink(slots))

    def _append_slot(self, day: DaySchedule, slot: ScheduledActivity, suffix: str) -> Optional[ScheduledActivity]:
        """
        Copy of `slot` placed after the last slot of `day`, or None when it
        would run past midnight. The copy's id is unique within `day`.
        """
        if day.slots:
            start = day.slots[-1].end_minutes + self.day_policy.deferred_slot_gap
        else:
            start = time_to_minutes(self.day_policy.deferred_day_start)
        if start + slot.actual_duration > MINUTES_PER_DAY:
            return None

        taken   = {s.slot_id for s in day.slots}
        slot_id = f"{slot.slot_id}{suffix}"
        n = 2
        while slot_id in taken:
            slot_id = f"{slot.slot_id}{suffix}_{n}"
            n += 1

        return replace(
            slot,
            slot_id=slot_id,
            scheduled_start=minutes_to_time(start),
            commute_from_previous=None,
        )

    # ── Defer ────────────────────────────────────────────────────────────────

    def defer_activity_to_day(
        self,
        schedule: MultiDaySchedule,
        slot_id: str,
        from_day: int,
        to_day: int,
    ) -> MultiDayResult:
        failed = MultiDayResult(schedule=schedule, success=False)
        n = len(schedule.days)
        if not (0 <= from_day < n and 0 <= to_day < n) or from_day == to_day:
            return failed

        source, target = schedule.days[from_day], schedule.days[to_day]
        idx = source.index_of(slot_id)
        if idx == -1:
            return failed

        slot = source.slots[idx]
        if slot.is_locked or not activity_flexibility(slot, self.policy).can_defer:
            logger.debug("defer refused for %s (locked or not deferrable)", slot_id)
            return failed

        moved = self._append_slot(target, slot, "_deferred")
        if moved is None:
            logger.debug("defer refused for %s (Day %d has no room before midnight)", slot_id, to_day + 1)
            return failed

        saved = slot.actual_duration + slot.commute_minutes
        remaining = shift_slots(source.slots[:idx] + source.slots[idx + 1:], idx, -saved)

        changes = [
            ScheduleChange(
                id=new_id(), type=ChangeType.ACTIVITY_REMOVED, slot_id=slot.slot_id,
                activity_name=slot.name, description=f"Deferred to Day {to_day + 1}",
                before={"start_time": slot.scheduled_start, "end_time": slot.scheduled_end}, after={},
            ),
            ScheduleChange(
                id=new_id(), type=ChangeType.DAY_MOVED, slot_id=moved.slot_id,
                activity_name=moved.name, description=f"Added to Day {to_day + 1}",
                before={"day": from_day + 1},
                after={"day": to_day + 1, "start_time": moved.scheduled_start, "end_time": moved.scheduled_end},
            ),
        ]
        changes += time_shift_changes(source.slots, remaining)

        days = list(schedule.days)
        days[from_day] = self._finish(source, remaining)
        days[to_day] = self._finish(target, target.slots + [moved])
        return MultiDayResult(
            schedule=replace(schedule, days=days),
            changes=changes,
            deferred=[DeferredActivity(activity=moved, from_day=from_day, to_day=to_day)],
        )

    # ── Balance ──────────────────────────────────────────────────────────────

    def balance_day_workload(self, schedule: MultiDaySchedule, max_per_day: Optional[int] = None) -> MultiDayResult:
        """
        For every day but the last holding more than `max_per_day` slots, defer
        its most skippable deferrable slots to the next day with room.
        """
        cap = max_per_day or self.day_policy.max_activities_per_day
        current = schedule
        changes: list[ScheduleChange] = []
        deferred: list[DeferredActivity] = []

        for day_idx in range(len(current.days) - 1):
            day = current.days[day_idx]
            excess = len(day.slots) - cap
            if excess <= 0:
                continue

            movable = [
                s for s in day.slots
                if not s.is_locked and activity_flexibility(s, self.policy).can_defer
            ]
            movable.sort(key=lambda s: activity_flexibility(s, self.policy).skip_priority)

            for slot in movable[:excess]:
                for target in range(day_idx + 1, len(current.days)):
                    if len(current.days[target].slots) >= cap:
                        continue
                    result = self.defer_activity_to_day(current, slot.slot_id, day_idx, target)
                    if result.success:
                        current = result.schedule
                        changes += result.changes
                        deferred += result.deferred
                        break

        logger.info("balance_day_workload (cap %d): moved %d activities", cap, len(deferred))
        return MultiDayResult(schedule=current, changes=changes, deferred=deferred)

    # ── Emergency ────────────────────────────────────────────────────────────

    def emergency_multi_day_reshuffle(
        self,
        schedule: MultiDaySchedule,
        start_day: int,
        days_to_cancel: int,
        reason: str,
    ) -> MultiDayResult:
        n = len(schedule.days)
        if not 0 <= start_day < n or days_to_cancel <= 0:
            return MultiDayResult(schedule=schedule, success=False)

        end_day = min(start_day + days_to_cancel, n)
        cap = self.day_policy.max_activities_per_day
        changes: list[ScheduleChange] = []
        cleared: list[ScheduledActivity] = []

        days = list(schedule.days)
        touched: set[int] = set()
        for i in range(start_day, end_day):
            for slot in days[i].slots:
                if slot.is_locked:
                    continue
                cleared.append(slot)
                changes.append(ScheduleChange(
                    id=new_id(), type=ChangeType.ACTIVITY_REMOVED, slot_id=slot.slot_id,
                    activity_name=slot.name, description=f"Cancelled: {reason}",
                    before={"start_time": slot.scheduled_start, "end_time": slot.scheduled_end}, after={},
                ))
            days[i] = replace(days[i], slots=[s for s in days[i].slots if s.is_locked])
            touched.add(i)

        deferred: list[DeferredActivity] = []
        for slot in cleared:
            flex = activity_flexibility(slot, self.policy)
            if not flex.can_defer:
                continue
            for offset in range(flex.defer_days + 1):
                target = end_day + offset
                if target >= n:
                    break
                if len(days[target].slots) >= cap:
                    continue
                moved = self._append_slot(days[target], slot, "_rescheduled")
                if moved is None:
                    continue
                days[target] = replace(days[target], slots=days[target].slots + [moved])
                touched.add(target)
                deferred.append(DeferredActivity(activity=moved, from_day=start_day, to_day=target))
                changes.append(ScheduleChange(
                    id=new_id(), type=ChangeType.DAY_MOVED, slot_id=moved.slot_id,
                    activity_name=moved.name, description=f"Rescheduled to Day {target + 1}",
                    before={},
                    after={"day": target + 1, "start_time": moved.scheduled_start, "end_time": moved.scheduled_end},
                ))
                break

        for i in touched:
            days[i] = self._finish(days[i], days[i].slots)

        logger.info(
            "emergency reshuffle days %d-%d (%s): cleared %d, rescheduled %d",
            start_day + 1, end_day, reason, len(cleared), len(deferred),
        )
        return MultiDayResult(schedule=replace(schedule, days=days), changes=changes, deferred=deferred)

    # ── Impact ───────────────────────────────────────────────────────────────

    def analyze_multi_day_impact(
        self,
        trigger: TriggerEvent,
        schedule: MultiDaySchedule,
        current_day: int,
        analyzer: ImpactAnalyzer | None = None,
    ) -> ImpactAnalysis:
        analyzer = analyzer or ImpactAnalyzer(self.config, self.policy)
        if not 0 <= current_day < len(schedule.days):
            return analyzer.analyze(trigger, DaySchedule())

        day = schedule.days[current_day]
        base = analyzer.analyze(trigger, day)
        affected_days = [current_day]

        if trigger.context.user_state in _END_OF_DAY_STATES:
            now = time_to_minutes(trigger.context.current_time) if trigger.context.current_time else -1
            remaining = [s for s in day.slots if s.start_minutes > now and not s.is_locked]
            if remaining:
                last = min(current_day + self.day_policy.impact_lookahead_days, len(schedule.days) - 1)
                affected_days += list(range(current_day + 1, last + 1))

        return replace(
            base,
            affected_day_indices=affected_days,
            cascade_effect=CascadeLevel.MULTI_DAY if len(affected_days) > 1 else base.cascade_effect,
        )
