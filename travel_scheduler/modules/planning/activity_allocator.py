"""
modules/planning/activity_allocator.py
----------------------------------------
Assigns one candidate activity (or restaurant, for meal slots) to each slot.

The allocation is a fold over the slots: an explicit AllocationState is passed
from one step to the next and never shared outside a single allocate() call,
so allocate() is a pure function of (slots, candidates).

Per slot:
  1. filter   unused; restaurant-for-meal / activity-otherwise; time-of-day fit;
              recommended duration <= slot duration + overflow tolerance
  2. rescore  +10 same neighborhood as previous placement, -5 repeated category
  3. choose   best + up to three runner-ups (stable: ties keep pool order)
  4. place    start = slot start + inbound commute,
              duration = min(recommended, slot window - commute)
Slots with no surviving candidate are dropped (a sparse day is valid).
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
import logging
from typing import Optional

from travel_scheduler import config
from travel_scheduler.modules.tool_usage.distance_tool import DistanceTool
from travel_scheduler.modules.tool_usage.time_tool import minutes_to_time, time_to_minutes
from travel_scheduler.schemas.activity import ScoredActivity
from travel_scheduler.schemas.schedule import ScheduledActivity, SlotType, TimeSlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationState:
    """Accumulator threaded through the fold. Each step returns a new state."""
    used_ids: frozenset[str] = frozenset()
    used_categories: frozenset[str] = frozenset()
    previous_neighborhood: Optional[str] = None
    placed: tuple[ScheduledActivity, ...] = ()


@dataclass
class AllocationResult:
    scheduled: list[ScheduledActivity] = field(default_factory=list)
    leftover: list[ScoredActivity] = field(default_factory=list)


class ActivityAllocator:

    def __init__(self, distance_tool: DistanceTool | None = None):
        self.distance_tool = distance_tool or DistanceTool()

    def allocate(
        self,
        slots: list[TimeSlot],
        candidates: list[ScoredActivity],
        previous_neighborhood: Optional[str] = None,
    ) -> AllocationResult:
        """
        Fill slots in template order.

        Args:
            slots:                 Template slots for the day, chronological.
            candidates:            Activities and restaurants, in pool order.
            previous_neighborhood: Where the traveler ended the previous day.

        Returns:
            AllocationResult with the placed activities and the unused pool.
        """
        state = AllocationState(previous_neighborhood=previous_neighborhood or None)
        for slot in slots:
            state = self._step(state, slot, candidates)

        leftover = [c for c in candidates if c.activity.id not in state.used_ids]
        logger.debug("allocated %d/%d slots, %d candidates left", len(state.placed), len(slots), len(leftover))
        return AllocationResult(scheduled=list(state.placed), leftover=leftover)

    # ── Fold step ────────────────────────────────────────────────────────────

    def _step(self, state: AllocationState, slot: TimeSlot, pool: list[ScoredActivity]) -> AllocationState:
        ranked = rank_for_slot(slot, pool, state)
        if not ranked:
            logger.debug("slot %s (%s) left unfilled", slot.id, slot.name)
            return state

        best, alternatives = ranked[0], ranked[1:1 + config.MAX_ALTERNATIVES_PER_SLOT]
        placed = self._place(slot, best, alternatives, state.placed[-1] if state.placed else None)

        return AllocationState(
            used_ids=state.used_ids | {best.activity.id},
            used_categories=state.used_categories | {best.activity.category},
            previous_neighborhood=best.activity.neighborhood or None,
            placed=state.placed + (placed,),
        )

    def _place(
        self,
        slot: TimeSlot,
        best: ScoredActivity,
        alternatives: list[ScoredActivity],
        previous: Optional[ScheduledActivity],
    ) -> ScheduledActivity:
        commute = (
            self.distance_tool.commute_between(previous.activity.activity, best.activity)
            if previous else None
        )
        commute_minutes = commute.duration_minutes if commute else 0
        window = time_to_minutes(slot.end_time) - time_to_minutes(slot.start_time)

        return ScheduledActivity(
            slot_id=slot.id,
            activity=best,
            scheduled_start=minutes_to_time(time_to_minutes(slot.start_time) + commute_minutes),
            actual_duration=max(0, min(best.activity.recommended_duration, window - commute_minutes)),
            alternatives=list(alternatives),
            commute_from_previous=commute,
        )


# ── Filtering and scoring ─────────────────────────────────────────────────────

def fits_slot(candidate: ScoredActivity, slot: TimeSlot) -> bool:
    activity = candidate.activity
    if slot.slot_type == SlotType.MEAL and slot.meal_type is not None:
        if not activity.is_restaurant or slot.meal_type not in activity.meal_types:
            return False
    elif activity.is_restaurant:
        return False

    if slot.time_of_day not in activity.best_time_of_day:
        return False
    return activity.recommended_duration <= slot.duration_minutes + config.SLOT_OVERFLOW_TOLERANCE_MINUTES


def rescore(candidate: ScoredActivity, state: AllocationState) -> ScoredActivity:
    score = candidate.total_score
    if state.previous_neighborhood and candidate.activity.neighborhood == state.previous_neighborhood:
        score += config.SAME_NEIGHBORHOOD_BONUS
    if candidate.activity.category in state.used_categories:
        score -= config.REPEAT_CATEGORY_PENALTY
    return replace(candidate, total_score=score)


def rank_for_slot(slot: TimeSlot, pool: list[ScoredActivity], state: AllocationState) -> list[ScoredActivity]:
    """Eligible candidates for `slot`, rescored, highest first (stable)."""
    eligible = [
        rescore(c, state) for c in pool
        if c.activity.id not in state.used_ids and fits_slot(c, slot)
    ]
    return sorted(eligible, key=lambda c: c.total_score, reverse=True)
