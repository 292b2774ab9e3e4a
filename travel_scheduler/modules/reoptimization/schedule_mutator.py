"""
modules/reoptimization/schedule_mutator.py
--------------------------------------------
Repair operations on a single DaySchedule.

Every operation returns a MutationResult holding a NEW schedule (commute edges
relinked, totals and warnings re-derived) plus the ScheduleChange records that
describe it. An unknown slot id, or a locked target, is a no-op: the input
schedule comes back unchanged with an empty change list.

Time shifts propagate forward through the day and stop at the first locked
slot; that slot and everything after it keep their times.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
import logging
from typing import Optional

from travel_scheduler.modules.planning.schedule_validator import ScheduleValidator, idle_gap
from travel_scheduler.modules.reoptimization.flexibility import activity_flexibility, new_id
from travel_scheduler.modules.tool_usage.distance_tool import DistanceTool
from travel_scheduler.modules.tool_usage.time_tool import minutes_to_time, time_to_minutes
from travel_scheduler.schemas.reshuffling import ChangeType, ScheduleChange
from travel_scheduler.schemas.schedule import DaySchedule, ScheduledActivity
from travel_scheduler.schemas.settings import FlexibilityPolicy, ReshuffleConfig

logger = logging.getLogger(__name__)


@dataclass
class MutationResult:
    schedule: DaySchedule
    changes: list[ScheduleChange] = field(default_factory=list)
    remaining_delay: int = 0
    removed: list[ScheduledActivity] = field(default_factory=list)
    applied_minutes: int = 0


def _times(slot: ScheduledActivity) -> dict:
    return {"start_time": slot.scheduled_start, "end_time": slot.scheduled_end, "duration": slot.actual_duration}


def _change(type_: ChangeType, slot: ScheduledActivity, description: str, before: dict, after: dict) -> ScheduleChange:
    return ScheduleChange(
        id=new_id(),
        type=type_,
        slot_id=slot.slot_id,
        activity_name=slot.name,
        description=description,
        before=before,
        after=after,
    )


def shift_slots(slots: list[ScheduledActivity], start_idx: int, minutes: int) -> list[ScheduledActivity]:
    """Move slots[start_idx:] by `minutes` (negative = earlier) up to the first locked slot."""
    shifted = list(slots)
    for i in range(start_idx, len(shifted)):
        if shifted[i].is_locked:
            break
        shifted[i] = replace(
            shifted[i],
            scheduled_start=minutes_to_time(shifted[i].start_minutes + minutes),
        )
    return shifted


def time_shift_changes(before: list[ScheduledActivity], after: list[ScheduledActivity]) -> list[ScheduleChange]:
    """One time_shift record per slot (matched by id) whose start moved."""
    original = {s.slot_id: s for s in before}
    changes = []
    for slot in after:
        old = original.get(slot.slot_id)
        if old is None or old.start_minutes == slot.start_minutes:
            continue
        delta = slot.start_minutes - old.start_minutes
        changes.append(_change(
            ChangeType.TIME_SHIFT, slot,
            f"Moved {'later' if delta > 0 else 'earlier'} by {abs(delta)} min",
            {"start_time": old.scheduled_start, "end_time": old.scheduled_end},
            {"start_time": slot.scheduled_start, "end_time": slot.scheduled_end},
        ))
    return changes


class ScheduleMutator:

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

    def _finish(self, schedule: DaySchedule, slots: list[ScheduledActivity]) -> DaySchedule:
        return self.validator.summarize(schedule, self.distance.relink(slots))

    # ── Buffer compression ───────────────────────────────────────────────────

    def compress_buffer(self, schedule: DaySchedule, delay_minutes: int, from_time: Optional[str] = None) -> MutationResult:
        """
        Absorb `delay_minutes` by borrowing idle time above the compression
        floor between consecutive slots. Borrowing at the gap in front of slot
        i moves slot i (and the unlocked run after it) earlier.

        Args:
            schedule:      Day to repair.
            delay_minutes: Minutes to absorb.
            from_time:     Only gaps in front of slots starting at/after this time.

        Returns:
            MutationResult whose remaining_delay is the unabsorbed part.
        """
        floor = self.config.buffers.compress_floor
        earliest = time_to_minutes(from_time) if from_time else None
        slots = list(schedule.slots)
        remaining = max(0, delay_minutes)

        for i in range(1, len(slots)):
            if remaining <= 0:
                break
            if slots[i].is_locked:
                continue
            if earliest is not None and slots[i].start_minutes < earliest:
                continue
            compressible = max(0, idle_gap(slots[i - 1], slots[i]) - floor)
            if compressible <= 0:
                continue
            amount = min(compressible, remaining)
            remaining -= amount
            slots = shift_slots(slots, i, -amount)

        absorbed = max(0, delay_minutes) - remaining
        if absorbed == 0:
            return MutationResult(schedule=schedule, remaining_delay=remaining)

        changes = time_shift_changes(schedule.slots, slots)
        logger.debug("compress_buffer absorbed %d of %d min", absorbed, delay_minutes)
        return MutationResult(
            schedule=self._finish(schedule, slots),
            changes=changes,
            remaining_delay=remaining,
            applied_minutes=absorbed,
        )

    # ── Shorten / skip ───────────────────────────────────────────────────────

    def shorten_activity(self, schedule: DaySchedule, slot_id: str, minutes: int) -> MutationResult:
        """
        Cut up to `minutes` from the slot, capped at its category's
        max-shorten percentage, and pull the following slots earlier by the
        amount actually applied.
        """
        idx = schedule.index_of(slot_id)
        if idx == -1:
            return MutationResult(schedule=schedule)

        slot = schedule.slots[idx]
        flex = activity_flexibility(slot, self.policy)
        if slot.is_locked or not flex.can_shorten:
            return MutationResult(schedule=schedule)

        amount = min(minutes, flex.max_shorten_minutes(slot.actual_duration))
        if amount <= 0:
            return MutationResult(schedule=schedule)

        shortened = replace(slot, actual_duration=slot.actual_duration - amount)
        slots = list(schedule.slots)
        slots[idx] = shortened
        slots = shift_slots(slots, idx + 1, -amount)

        changes = [_change(
            ChangeType.DURATION_CHANGE, slot, f"Shortened by {amount} min",
            {"duration": slot.actual_duration, "end_time": slot.scheduled_end},
            {"duration": shortened.actual_duration, "end_time": shortened.scheduled_end},
        )]
        changes += time_shift_changes(schedule.slots, slots)
        return MutationResult(schedule=self._finish(schedule, slots), changes=changes, applied_minutes=amount)

    def skip_activity(self, schedule: DaySchedule, slot_id: str, reason: str) -> MutationResult:
        """Remove the slot and pull later slots earlier by its duration + inbound commute."""
        idx = schedule.index_of(slot_id)
        if idx == -1 or schedule.slots[idx].is_locked:
            return MutationResult(schedule=schedule)

        slot = schedule.slots[idx]
        saved = slot.actual_duration + slot.commute_minutes
        slots = schedule.slots[:idx] + schedule.slots[idx + 1:]
        slots = shift_slots(slots, idx, -saved)

        changes = [_change(ChangeType.ACTIVITY_REMOVED, slot, f"Skipped: {reason}", _times(slot), {})]
        changes += time_shift_changes(schedule.slots, slots)
        logger.debug("skipped %s (%s), saved %d min", slot_id, slot.name, saved)
        return MutationResult(
            schedule=self._finish(schedule, slots),
            changes=changes,
            removed=[slot],
            applied_minutes=saved,
        )

    def find_best_activity_to_skip(self, schedule: DaySchedule, after_time: str) -> Optional[str]:
        """
        Unbooked slots starting at or after `after_time`: lowest skip priority
        first, ties go to the slot that frees the most time.
        """
        after = time_to_minutes(after_time)
        candidates = [
            s for s in schedule.slots
            if s.start_minutes >= after and not activity_flexibility(s, self.policy).has_booking
        ]
        if not candidates:
            return None
        best = min(
            candidates,
            key=lambda s: (
                activity_flexibility(s, self.policy).skip_priority,
                -(s.actual_duration + s.commute_minutes),
            ),
        )
        return best.slot_id

    # ── Content moves ────────────────────────────────────────────────────────

    def swap_activity_order(self, schedule: DaySchedule, slot_id_1: str, slot_id_2: str) -> MutationResult:
        """Exchange the content of two slots; both keep their start times."""
        i, j = schedule.index_of(slot_id_1), schedule.index_of(slot_id_2)
        if i == -1 or j == -1 or i == j:
            return MutationResult(schedule=schedule)

        a, b = schedule.slots[i], schedule.slots[j]
        slots = list(schedule.slots)
        slots[i] = replace(a, activity=b.activity, alternatives=b.alternatives, actual_duration=b.actual_duration)
        slots[j] = replace(b, activity=a.activity, alternatives=a.alternatives, actual_duration=a.actual_duration)

        changes = [
            _change(ChangeType.ORDER_SWAP, a, f"Swapped with {b.name}",
                    {"start_time": a.scheduled_start}, {"start_time": b.scheduled_start}),
            _change(ChangeType.ORDER_SWAP, b, f"Swapped with {a.name}",
                    {"start_time": b.scheduled_start}, {"start_time": a.scheduled_start}),
        ]
        return MutationResult(schedule=self._finish(schedule, slots), changes=changes)

    def replace_activity(self, schedule: DaySchedule, slot_id: str, reason: str = "Venue closed") -> MutationResult:
        """
        Put the slot's first usable alternative in place of its activity. With
        no alternative left the slot is skipped instead.
        """
        idx = schedule.index_of(slot_id)
        if idx == -1 or schedule.slots[idx].is_locked:
            return MutationResult(schedule=schedule)

        slot = schedule.slots[idx]
        in_use = {s.activity.activity.id for s in schedule.slots}
        replacement = next((alt for alt in slot.alternatives if alt.activity.id not in in_use), None)
        if replacement is None:
            return self.skip_activity(schedule, slot_id, reason)

        updated = replace(
            slot,
            activity=replacement,
            alternatives=[alt for alt in slot.alternatives if alt.activity.id != replacement.activity.id],
            actual_duration=min(replacement.activity.recommended_duration, slot.actual_duration),
        )
        slots = list(schedule.slots)
        slots[idx] = updated

        change = _change(
            ChangeType.ACTIVITY_REPLACED, slot,
            f"Replaced with {replacement.activity.name}: {reason}",
            {"activity": slot.name, **_times(slot)},
            {"activity": updated.name, **_times(updated)},
        )
        return MutationResult(schedule=self._finish(schedule, slots), changes=[change])

    # ── Whole-day moves ──────────────────────────────────────────────────────

    def shift_schedule(self, schedule: DaySchedule, from_slot_id: str, minutes: int) -> MutationResult:
        idx = schedule.index_of(from_slot_id)
        if idx == -1 or minutes == 0:
            return MutationResult(schedule=schedule)
        slots = shift_slots(schedule.slots, idx, minutes)
        changes = time_shift_changes(schedule.slots, slots)
        if not changes:
            return MutationResult(schedule=schedule)
        return MutationResult(schedule=self._finish(schedule, slots), changes=changes, applied_minutes=minutes)

    def emergency_reroute(self, schedule: DaySchedule, current_time: str) -> MutationResult:
        """Keep only slots that have already ended or are locked."""
        now = time_to_minutes(current_time)
        kept = [s for s in schedule.slots if s.end_minutes <= now or s.is_locked]
        removed = [s for s in schedule.slots if not (s.end_minutes <= now or s.is_locked)]
        if not removed:
            return MutationResult(schedule=schedule)

        changes = [
            _change(ChangeType.ACTIVITY_REMOVED, s, "Cleared for rest of day", _times(s), {})
            for s in removed
        ]
        logger.info("emergency_reroute at %s: cleared %d, kept %d", current_time, len(removed), len(kept))
        return MutationResult(schedule=self._finish(schedule, kept), changes=changes, removed=removed)
