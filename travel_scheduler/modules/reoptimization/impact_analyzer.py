"""
modules/reoptimization/impact_analyzer.py
-------------------------------------------
Computes what a trigger does to the rest of the day.

Delay resolution:
  running_late / closure / user_request -> context.delay_minutes (0 if absent)
  user_state                            -> need_break 30, slight_tired 15,
                                           very_tired 45, done_for_day / sick 999,
                                           anything else 0

The walk over affected slots carries a cumulative delay. The first affected
slot takes the full delay; before every later one the idle gap above the
absorption floor (10 min) soaks up part of it:

    gap        = slot start - (previous end + inbound commute)
    cumulative = max(0, cumulative - max(0, gap - floor))

Booking risk for a locked slot uses the delay arriving at the slot against the
gap in front of it (for the first affected slot: slot start - now):

    buffer = gap - arriving delay
    < 0 will_miss | < min buffer at_risk | < 2x min buffer tight | else safe
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Optional

from travel_scheduler.modules.planning.schedule_validator import idle_gap
from travel_scheduler.modules.reoptimization.flexibility import activity_flexibility
from travel_scheduler.modules.tool_usage.time_tool import minutes_to_time, time_to_minutes
from travel_scheduler.schemas.reshuffling import (
    AffectedActivity, BookingRisk, BookingRiskLevel, CascadeLevel, ImpactAnalysis,
    ImpactType, RecoveryOption, RecoveryType, TriggerEvent, TriggerType, UrgencyLevel, UserState,
)
from travel_scheduler.schemas.schedule import DaySchedule, ScheduledActivity
from travel_scheduler.schemas.settings import FlexibilityPolicy, ReshuffleConfig

logger = logging.getLogger(__name__)

CANCEL_REST_OF_DAY = 999

STATE_DELAY_MINUTES = {
    UserState.NEED_BREAK:   30,
    UserState.SLIGHT_TIRED: 15,
    UserState.VERY_TIRED:   45,
    UserState.DONE_FOR_DAY: CANCEL_REST_OF_DAY,
    UserState.SICK:         CANCEL_REST_OF_DAY,
}


def resolve_delay(trigger: TriggerEvent) -> int:
    if trigger.type == TriggerType.USER_STATE:
        return STATE_DELAY_MINUTES.get(trigger.context.user_state, 0)
    return trigger.context.delay_minutes or 0


def impact_summary(delay_minutes: int, activities_affected: int, bookings_at_risk: int) -> str:
    parts = []
    if delay_minutes > 0:
        parts.append(f"{delay_minutes} min delay")
    if activities_affected > 0:
        parts.append(f"{activities_affected} activities affected")
    if bookings_at_risk > 0:
        parts.append(f"{bookings_at_risk} booking{'s' if bookings_at_risk > 1 else ''} at risk")
    return ", ".join(parts) if parts else "No significant impact"


@dataclass
class _WalkStep:
    slot: ScheduledActivity
    gap: int            # idle minutes in front of the slot
    arriving: int       # delay reaching the slot before its gap absorbs anything
    cumulative: int     # delay the slot actually carries


class ImpactAnalyzer:
    """Pure function of (trigger, schedule) wrapped with its configuration."""

    def __init__(self, config: ReshuffleConfig | None = None, policy: FlexibilityPolicy | None = None):
        self.config = config or ReshuffleConfig()
        self.policy = policy or FlexibilityPolicy()

    def analyze(self, trigger: TriggerEvent, schedule: DaySchedule) -> ImpactAnalysis:
        total_delay = resolve_delay(trigger)
        affected: list[AffectedActivity] = []
        risks: list[BookingRisk] = []

        for step in self._walk(trigger, schedule, total_delay):
            affected.append(self._affected_activity(trigger, step))
            risk = self._booking_risk(step)
            if risk is not None and risk.risk_level != BookingRiskLevel.SAFE:
                risks.append(risk)

        critical = any(r.risk_level in (BookingRiskLevel.AT_RISK, BookingRiskLevel.WILL_MISS) for r in risks)
        if critical:
            urgency = UrgencyLevel.IMMEDIATE
        elif total_delay > 30:
            urgency = UrgencyLevel.WITHIN_HOUR
        else:
            urgency = UrgencyLevel.TODAY

        analysis = ImpactAnalysis(
            trigger_id=trigger.id,
            analyzed_at=datetime.now(),
            affected_activities=affected,
            bookings_at_risk=risks,
            cascade_effect=cascade_level(len(affected)),
            urgency=urgency,
            total_delay_minutes=total_delay,
            can_auto_resolve=total_delay <= self.config.thresholds.silent_buffer and not risks,
            summary=impact_summary(total_delay, len(affected), len(risks)),
        )
        logger.debug("Impact for trigger %s: %s", trigger.id, analysis.summary)
        return analysis

    # ── Walk ─────────────────────────────────────────────────────────────────

    def _walk(self, trigger: TriggerEvent, schedule: DaySchedule, total_delay: int) -> list[_WalkStep]:
        floor = self.config.buffers.impact_absorb_floor
        now = time_to_minutes(trigger.context.current_time) if trigger.context.current_time else None

        steps: list[_WalkStep] = []
        cumulative = total_delay
        for slot_id in trigger.affected_slot_ids:
            idx = schedule.index_of(slot_id)
            if idx == -1:
                continue
            slot = schedule.slots[idx]

            if not steps:
                gap = slot.start_minutes - now if now is not None else 0
                steps.append(_WalkStep(slot, gap, cumulative, cumulative))
                continue

            gap = idle_gap(schedule.slots[idx - 1], slot) if idx > 0 else 0
            arriving = cumulative
            cumulative = max(0, cumulative - max(0, gap - floor))
            steps.append(_WalkStep(slot, gap, arriving, cumulative))
        return steps

    def _affected_activity(self, trigger: TriggerEvent, step: _WalkStep) -> AffectedActivity:
        slot, delay = step.slot, step.cumulative
        flex = activity_flexibility(slot, self.policy)

        options: list[RecoveryOption] = []
        if flex.can_shorten and delay > 0 and delay <= flex.max_shorten_minutes(slot.actual_duration):
            options.append(RecoveryOption(
                type=RecoveryType.SHORTEN,
                description=f"Shorten to {slot.actual_duration - delay} min",
                time_saved=delay,
                tradeoff="Less time at this activity",
            ))
        if flex.can_skip:
            options.append(RecoveryOption(
                type=RecoveryType.SKIP,
                description=f"Skip {slot.name}",
                time_saved=slot.actual_duration + slot.commute_minutes,
                tradeoff=f"Miss {slot.name}",
            ))

        impact_type = ImpactType.DELAYED
        severity = min(100.0, delay / 60 * 100)
        can_recover = True

        closure = trigger.context.closure
        if trigger.type == TriggerType.CLOSURE and closure and closure.venue_id == slot.activity.activity.id:
            impact_type, severity, can_recover = ImpactType.IMPOSSIBLE, 100.0, False
        if trigger.context.user_state == UserState.DONE_FOR_DAY:
            impact_type, severity = ImpactType.IMPOSSIBLE, 100.0

        return AffectedActivity(
            slot_id=slot.slot_id,
            activity=slot,
            impact_type=impact_type,
            impact_severity=severity,
            can_recover=can_recover,
            recovery_options=options,
            incoming_delay=delay,
        )

    def _booking_risk(self, step: _WalkStep) -> Optional[BookingRisk]:
        protection = self.config.booking_protection
        if not step.slot.is_locked or not protection.enabled:
            return None

        buffer = step.gap - step.arriving
        if buffer < 0:
            level = BookingRiskLevel.WILL_MISS
        elif buffer < protection.minimum_buffer:
            level = BookingRiskLevel.AT_RISK
        elif buffer < protection.minimum_buffer * 2:
            level = BookingRiskLevel.TIGHT
        else:
            level = BookingRiskLevel.SAFE

        return BookingRisk(
            slot_id=step.slot.slot_id,
            risk_level=level,
            latest_arrival_time=step.slot.scheduled_start,
            current_eta=minutes_to_time(step.slot.start_minutes - buffer),
            buffer_minutes=buffer,
        )


def cascade_level(affected_count: int) -> CascadeLevel:
    if affected_count > 3:
        return CascadeLevel.REST_OF_DAY
    if affected_count > 1:
        return CascadeLevel.PARTIAL_DAY
    return CascadeLevel.ISOLATED
