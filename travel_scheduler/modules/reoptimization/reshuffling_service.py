"""
modules/reoptimization/reshuffling_service.py
-----------------------------------------------
Orchestrates the disruption pipeline for one traveler:

    TriggerDetector -> ImpactAnalyzer -> StrategySelector -> ScheduleMutator
                                                          -> UndoLedger

Read-only entry points (check_triggers, get_suggested_reshuffle) preview what
a strategy would do and never touch the ledger. Applying entry points
(handle_delay, handle_user_message, apply_reshuffle) record the pre-repair
schedule under a fresh undo token.

Failures are returned, not raised: an unknown trigger id or an unknown /
evicted undo token yields success=False.

The clock is injectable; every pure function below receives an explicit
"HH:MM" current time.
"""

from __future__ import annotations
from collections import OrderedDict
import copy
from datetime import datetime
import logging
from typing import Callable, Optional, Union

from travel_scheduler.modules.planning.schedule_validator import ScheduleValidator
from travel_scheduler.modules.reoptimization.flexibility import new_id
from travel_scheduler.modules.reoptimization.impact_analyzer import ImpactAnalyzer
from travel_scheduler.modules.reoptimization.multi_day import MultiDayReshuffler
from travel_scheduler.modules.reoptimization.schedule_mutator import (
    MutationResult, ScheduleMutator, time_shift_changes,
)
from travel_scheduler.modules.reoptimization.strategy_selector import StrategySelector
from travel_scheduler.modules.reoptimization import trigger_detector
from travel_scheduler.modules.reoptimization.undo_ledger import UndoLedger
from travel_scheduler.modules.tool_usage.distance_tool import DistanceTool
from travel_scheduler.modules.tool_usage.time_tool import current_time_string
from travel_scheduler.schemas.reshuffling import (
    ApplyReshuffleResponse, ChangeType, CheckTriggersResponse, ImpactAnalysis,
    MultiDayResult, MultiDaySchedule, ReshuffleEvent, ReshuffleResult,
    ReshuffleStrategy, ScheduleStatus, TriggerEvent, TriggerSeverity, UndoReshuffleResponse,
    UserState,
)
from travel_scheduler.schemas.schedule import DaySchedule
from travel_scheduler.schemas.settings import ExperienceSettings, FlexibilityPolicy, ReshuffleConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.8

# (new schedule / changes / removed, human-readable explanation)
_Outcome = tuple[MutationResult, str]


def schedule_status(triggers: list[TriggerEvent]) -> ScheduleStatus:
    severities = {t.severity for t in triggers}
    if TriggerSeverity.CRITICAL in severities:
        return ScheduleStatus.CRITICAL
    if TriggerSeverity.HIGH in severities:
        return ScheduleStatus.NEEDS_ATTENTION
    if TriggerSeverity.MEDIUM in severities:
        return ScheduleStatus.MINOR_DELAY
    return ScheduleStatus.ON_TRACK


class ReshufflingService:
    """
    Real-time repair of a single DaySchedule.

    Owns its UndoLedger and a bounded memory of recently detected triggers so
    apply_reshuffle can be called with a trigger id returned by check_triggers.
    """

    def __init__(
        self,
        config: ReshuffleConfig | None = None,
        settings: ExperienceSettings | None = None,
        policy: FlexibilityPolicy | None = None,
        clock: Callable[[], str] = current_time_string,
    ):
        self.config    = config or ReshuffleConfig()
        self.settings  = settings or ExperienceSettings()
        self.policy    = policy or FlexibilityPolicy()
        self.clock     = clock

        self.distance  = DistanceTool(self.settings)
        self.validator = ScheduleValidator(self.settings)
        self.analyzer  = ImpactAnalyzer(self.config, self.policy)
        self.selector  = StrategySelector(self.config)
        self.mutator   = ScheduleMutator(self.distance, self.validator, self.config, self.policy)
        self.ledger    = UndoLedger(self.config.undo.max_history_size)

        self._triggers: OrderedDict[str, TriggerEvent] = OrderedDict()
        self._handlers: dict[ReshuffleStrategy, Callable[..., _Outcome]] = {
            ReshuffleStrategy.COMPRESS_BUFFER:   self._compress_buffer,
            ReshuffleStrategy.SHORTEN_ACTIVITY:  self._shorten_activity,
            ReshuffleStrategy.SKIP_ACTIVITY:     self._skip_activity,
            ReshuffleStrategy.REPLACE_ACTIVITY:  self._replace_activity,
            ReshuffleStrategy.EMERGENCY_REROUTE: self._emergency_reroute,
            ReshuffleStrategy.NO_ACTION:         self._no_action,
        }

    # ── Trigger memory ───────────────────────────────────────────────────────

    def _remember(self, trigger: TriggerEvent) -> TriggerEvent:
        self._triggers[trigger.id] = trigger
        while len(self._triggers) > self.config.undo.max_history_size:
            self._triggers.popitem(last=False)
        return trigger

    def _now(self, current_time: Optional[str], trigger: TriggerEvent | None = None) -> str:
        if current_time:
            return current_time
        if trigger is not None and trigger.context.current_time:
            return trigger.context.current_time
        return self.clock()

    # ── Pipeline pieces (exposed for callers that drive it themselves) ───────

    def create_delay_trigger(self, delay_minutes: int, schedule: DaySchedule, current_time: Optional[str] = None) -> TriggerEvent:
        return trigger_detector.create_delay_trigger(delay_minutes, schedule, self._now(current_time))

    def analyze_impact(self, trigger: TriggerEvent, schedule: DaySchedule) -> ImpactAnalysis:
        return self.analyzer.analyze(trigger, schedule)

    def select_strategy(self, trigger: TriggerEvent, impact: ImpactAnalysis) -> ReshuffleStrategy:
        return self.selector.select(trigger, impact)

    # ── Read-only entry points ───────────────────────────────────────────────

    def check_triggers(
        self,
        schedule: DaySchedule,
        current_time: Optional[str] = None,
        user_reported_issue: Optional[str] = None,
        user_state: Optional[UserState] = None,
    ) -> CheckTriggersResponse:
        """
        Detect triggers from a free-text report and/or an explicit user state
        and preview the repair each one would get. Nothing is recorded in the
        undo ledger.
        """
        now = self._now(current_time)
        triggers: list[TriggerEvent] = []
        if user_reported_issue:
            triggers.append(trigger_detector.create_trigger_from_user_input(user_reported_issue, schedule, now))
        if user_state is not None:
            triggers.append(trigger_detector.create_user_state_trigger(user_state, schedule, now))

        suggestions = []
        for trigger in triggers:
            self._remember(trigger)
            impact = self.analyzer.analyze(trigger, schedule)
            strategy = self.selector.select(trigger, impact)
            _, result = self.apply_strategy(strategy, trigger, impact, schedule, now)
            suggestions.append(result)

        status = schedule_status(triggers)
        logger.info("check_triggers at %s: %d trigger(s), status=%s", now, len(triggers), status.value)
        return CheckTriggersResponse(
            triggers_detected=triggers,
            suggested_actions=suggestions,
            schedule_status=status,
            summary=(
                f"Detected {len(triggers)} issue{'s' if len(triggers) > 1 else ''}"
                if triggers else None
            ),
        )

    def get_suggested_reshuffle(self, message: str, schedule: DaySchedule, current_time: Optional[str] = None) -> ReshuffleResult:
        now = self._now(current_time)
        trigger = self._remember(trigger_detector.create_trigger_from_user_input(message, schedule, now))
        impact = self.analyzer.analyze(trigger, schedule)
        _, result = self.apply_strategy(self.selector.select(trigger, impact), trigger, impact, schedule, now)
        return result

    # ── Applying entry points ────────────────────────────────────────────────

    def handle_delay(self, delay_minutes: int, schedule: DaySchedule, current_time: Optional[str] = None) -> ApplyReshuffleResponse:
        trigger = self._remember(self.create_delay_trigger(delay_minutes, schedule, current_time))
        return self.apply_reshuffle(schedule, trigger, current_time=current_time)

    def handle_user_message(self, message: str, schedule: DaySchedule, current_time: Optional[str] = None) -> ApplyReshuffleResponse:
        now = self._now(current_time)
        trigger = self._remember(trigger_detector.create_trigger_from_user_input(message, schedule, now))
        return self.apply_reshuffle(schedule, trigger, current_time=now)

    def apply_reshuffle(
        self,
        schedule: DaySchedule,
        trigger: Union[str, TriggerEvent],
        strategy: Optional[ReshuffleStrategy] = None,
        skip_slot_id: Optional[str] = None,
        current_time: Optional[str] = None,
    ) -> ApplyReshuffleResponse:
        """
        Apply a repair and record it for undo.

        Args:
            schedule:     The day as it is now.
            trigger:      A TriggerEvent, or the id of one seen by check_triggers.
            strategy:     Override the selected strategy.
            skip_slot_id: With skip_activity, the slot the traveler chose to drop.
            current_time: "HH:MM"; defaults to the trigger's time, then the clock.

        Returns:
            ApplyReshuffleResponse; success=False for an unknown trigger id.
        """
        if isinstance(trigger, str):
            found = self._triggers.get(trigger)
            if found is None:
                logger.warning("apply_reshuffle: unknown trigger id %s", trigger)
                return ApplyReshuffleResponse(
                    success=False,
                    updated_schedule=schedule,
                    changes=[],
                    undo_token=None,
                    message=f"Trigger {trigger} not found",
                )
            trigger = found

        now = self._now(current_time, trigger)
        impact = self.analyzer.analyze(trigger, schedule)
        strategy = strategy or self.selector.select(trigger, impact)
        new_schedule, result = self.apply_strategy(strategy, trigger, impact, schedule, now, skip_slot_id)

        token = new_id()
        self.ledger.record(token, ReshuffleEvent(
            id=new_id(),
            triggered_at=datetime.now(),
            trigger=trigger,
            strategy_used=strategy,
            changes_made=result.changes,
            previous_schedule=copy.deepcopy(schedule),
            new_schedule=new_schedule,
        ))
        result.undo_token = token
        result.can_undo = True

        logger.info(
            "Applied %s for trigger %s: %d change(s), undo token %s",
            strategy.value, trigger.id, len(result.changes), token,
        )
        return ApplyReshuffleResponse(
            success=True,
            updated_schedule=new_schedule,
            changes=result.changes,
            undo_token=token,
            message=result.explanation,
            result=result,
        )

    def undo_reshuffle(self, undo_token: str) -> UndoReshuffleResponse:
        event = self.ledger.pop(undo_token)
        if event is None:
            logger.warning("undo_reshuffle: token %s not found or expired", undo_token)
            return UndoReshuffleResponse(
                success=False,
                restored_schedule=None,
                message="Undo token not found or expired",
            )
        logger.info("Undid %s (trigger %s)", event.strategy_used.value, event.trigger.id)
        return UndoReshuffleResponse(
            success=True,
            restored_schedule=event.previous_schedule,
            message="Changes have been undone",
        )

    # ── Strategy dispatch ────────────────────────────────────────────────────

    def apply_strategy(
        self,
        strategy: ReshuffleStrategy,
        trigger: TriggerEvent,
        impact: ImpactAnalysis,
        schedule: DaySchedule,
        current_time: Optional[str] = None,
        skip_slot_id: Optional[str] = None,
    ) -> tuple[DaySchedule, ReshuffleResult]:
        """Run one strategy. Does not touch the ledger."""
        now = self._now(current_time, trigger)
        outcome, explanation = self._handlers[strategy](trigger, impact, schedule, now, skip_slot_id)
        new_schedule = outcome.schedule

        result = ReshuffleResult(
            id=new_id(),
            trigger_id=trigger.id,
            strategy=strategy,
            changes=outcome.changes,
            explanation=explanation,
            time_saved_minutes=sum(
                c.before.get("duration", 0) for c in outcome.changes
                if c.type == ChangeType.ACTIVITY_REMOVED
            ),
            bookings_protected=self._bookings_protected(impact, schedule, new_schedule),
            activities_affected=len({c.slot_id for c in outcome.changes}),
            requires_confirmation=strategy != ReshuffleStrategy.COMPRESS_BUFFER,
            confidence=DEFAULT_CONFIDENCE,
        )
        return new_schedule, result

    @staticmethod
    def _bookings_protected(impact: ImpactAnalysis, before: DaySchedule, after: DaySchedule) -> int:
        """At-risk bookings still present with unchanged times after the repair."""
        kept = 0
        for risk in impact.bookings_at_risk:
            old, new = before.find_slot(risk.slot_id), after.find_slot(risk.slot_id)
            if old is not None and new is not None and old.scheduled_start == new.scheduled_start \
                    and old.scheduled_end == new.scheduled_end:
                kept += 1
        return kept

    # ── Handlers: (trigger, impact, schedule, now, skip_slot_id) -> _Outcome ─

    def _compress_buffer(self, trigger, impact, schedule, now, skip_slot_id) -> _Outcome:
        delay = impact.total_delay_minutes
        outcome = self.mutator.compress_buffer(schedule, delay, from_time=now)
        if outcome.remaining_delay > 0:
            explanation = (
                f"Compressed buffers to absorb {delay - outcome.remaining_delay} min. "
                f"{outcome.remaining_delay} min delay remains."
            )
        else:
            explanation = f"Absorbed {delay} min delay by compressing buffers."
        return outcome, explanation

    def _shorten_activity(self, trigger, impact, schedule, now, skip_slot_id) -> _Outcome:
        delay = impact.total_delay_minutes
        remaining = delay
        current = schedule
        duration_changes = []

        for affected in impact.affected_activities:
            if remaining <= 0:
                break
            step = self.mutator.shorten_activity(current, affected.slot_id, remaining)
            if step.applied_minutes <= 0:
                continue
            current = step.schedule
            remaining -= step.applied_minutes
            duration_changes += [c for c in step.changes if c.type == ChangeType.DURATION_CHANGE]

        recovered = delay - remaining
        if recovered <= 0:
            return MutationResult(schedule=schedule, remaining_delay=delay), "No activity could be shortened."

        changes = duration_changes + time_shift_changes(schedule.slots, current.slots)
        outcome = MutationResult(schedule=current, changes=changes, remaining_delay=remaining, applied_minutes=recovered)
        return outcome, f"Shortened activities to recover {recovered} min."

    def _skip_activity(self, trigger, impact, schedule, now, skip_slot_id) -> _Outcome:
        slot_id = skip_slot_id or self.mutator.find_best_activity_to_skip(schedule, now)
        if slot_id is None:
            return MutationResult(schedule=schedule), "No suitable activity found to skip."

        reason = "User request" if skip_slot_id else "Time constraint"
        outcome = self.mutator.skip_activity(schedule, slot_id, reason)
        if not outcome.removed:
            return outcome, "No suitable activity found to skip."
        return outcome, f"Skipped {outcome.removed[0].name} to save time."

    def _replace_activity(self, trigger, impact, schedule, now, skip_slot_id) -> _Outcome:
        closure = trigger.context.closure
        slot = next(
            (s for s in schedule.slots if closure and s.activity.activity.id == closure.venue_id),
            None,
        )
        if slot is None:
            return MutationResult(schedule=schedule), "Could not find the closed venue in today's schedule."
        if slot.is_locked:
            return MutationResult(schedule=schedule), f"{slot.name} is a protected booking; contact the venue."

        outcome = self.mutator.replace_activity(schedule, slot.slot_id, closure.reason or "Venue closed")
        if outcome.removed:
            return outcome, f"{slot.name} is closed and had no alternative; skipped it."
        return outcome, f"{slot.name} is closed; replaced it with {outcome.schedule.find_slot(slot.slot_id).name}."

    def _emergency_reroute(self, trigger, impact, schedule, now, skip_slot_id) -> _Outcome:
        outcome = self.mutator.emergency_reroute(schedule, now)
        return outcome, f"Cleared {len(outcome.removed)} remaining activities. Rest and recover!"

    def _no_action(self, trigger, impact, schedule, now, skip_slot_id) -> _Outcome:
        return MutationResult(schedule=schedule), "No changes needed."


class MultiDayReshufflingService(ReshufflingService):
    """ReshufflingService plus repairs that move activities between days."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.multi_day = MultiDayReshuffler(self.distance, self.validator, self.config, self.policy)

    def defer_activity(self, schedule: MultiDaySchedule, slot_id: str, from_day: int, to_day: int) -> MultiDayResult:
        return self.multi_day.defer_activity_to_day(schedule, slot_id, from_day, to_day)

    def balance_workload(self, schedule: MultiDaySchedule, max_per_day: Optional[int] = None) -> MultiDayResult:
        return self.multi_day.balance_day_workload(schedule, max_per_day)

    def handle_emergency(self, schedule: MultiDaySchedule, start_day: int, days_affected: int, reason: str) -> MultiDayResult:
        return self.multi_day.emergency_multi_day_reshuffle(schedule, start_day, days_affected, reason)

    def analyze_multi_day_impact(self, trigger: TriggerEvent, schedule: MultiDaySchedule, current_day: int) -> ImpactAnalysis:
        return self.multi_day.analyze_multi_day_impact(trigger, schedule, current_day, self.analyzer)
