"""
modules/reoptimization/trigger_detector.py
--------------------------------------------
Turns a disruption signal into a TriggerEvent.

Entry points:
  - free-text message    -> keyword / phrase classification
  - explicit delay       -> always running_late
  - explicit user state  -> user_state

Keyword rules (first match wins; whole-word matching so "rest" does not fire
on "restaurant"):
  1. late / behind / delayed                  -> running_late (+ minutes, default 15)
  2. tired / exhausted / need rest            -> very_tired | slight_tired
  3. break / rest / slow down                 -> need_break
  4. closed / shut / not open                 -> closure
  5. done for today / call it a day / hotel   -> done_for_day
  6. sick / unwell / not feeling good         -> sick
  7. ahead of schedule / early                -> early
  8. energized / full of energy / feeling great -> energized
  9. anything else                            -> user_request

affected_slot_ids = every slot whose scheduled start is at or after "now".
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
import logging
import re
from typing import Optional

from travel_scheduler import config
from travel_scheduler.modules.reoptimization.flexibility import new_id
from travel_scheduler.modules.tool_usage.time_tool import time_to_minutes
from travel_scheduler.schemas.reshuffling import (
    ClosureContext, TriggerContext, TriggerEvent, TriggerSeverity, TriggerSource,
    TriggerType, UserState,
)
from travel_scheduler.schemas.schedule import DaySchedule

logger = logging.getLogger(__name__)


def _words(*phrases: str) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(re.escape(p) for p in phrases) + r")\b")


_LATE       = _words("late", "behind", "delayed")
_TIRED      = _words("tired", "exhausted", "need rest")
_VERY       = _words("very", "exhausted", "really tired", "so tired")
_BREAK      = _words("break", "rest", "slow down")
_CLOSED     = _words("closed", "shut", "not open")
_DONE       = _words("done for today", "done for the day", "call it a day",
                     "back to hotel", "back to the hotel")
_SICK       = _words("sick", "unwell", "not feeling good", "not feeling well", "ill")
_EARLY      = _words("ahead of schedule", "early")
_ENERGIZED  = _words("energized", "full of energy", "feeling great")

_MINUTES = re.compile(r"(\d+)\s*(?:min|mins|minute|minutes)\b")
_HOURS   = re.compile(r"(\d+(?:\.\d+)?)\s*(?:h|hr|hrs|hour|hours)\b")

_STATE_SEVERITY = {
    UserState.ENERGIZED:    TriggerSeverity.LOW,
    UserState.EARLY:        TriggerSeverity.LOW,
    UserState.SLIGHT_TIRED: TriggerSeverity.MEDIUM,
    UserState.RUNNING_LATE: TriggerSeverity.MEDIUM,
    UserState.VERY_TIRED:   TriggerSeverity.HIGH,
    UserState.NEED_BREAK:   TriggerSeverity.HIGH,
    UserState.DONE_FOR_DAY: TriggerSeverity.CRITICAL,
    UserState.SICK:         TriggerSeverity.CRITICAL,
}


@dataclass(frozen=True)
class ParsedMessage:
    type: TriggerType
    user_state: Optional[UserState] = None
    delay_minutes: Optional[int] = None


# ── Severity ──────────────────────────────────────────────────────────────────

def delay_severity(delay_minutes: int) -> TriggerSeverity:
    if delay_minutes <= 10:
        return TriggerSeverity.LOW
    if delay_minutes <= 30:
        return TriggerSeverity.MEDIUM
    if delay_minutes <= 60:
        return TriggerSeverity.HIGH
    return TriggerSeverity.CRITICAL


def user_state_severity(state: UserState) -> TriggerSeverity:
    return _STATE_SEVERITY.get(state, TriggerSeverity.MEDIUM)


# ── Message parsing ───────────────────────────────────────────────────────────

def extract_delay_minutes(text: str) -> int:
    """Minutes mentioned in `text` ("20 min", "1.5 hours"); default 15."""
    m = _MINUTES.search(text)
    if m:
        return int(m.group(1))
    h = _HOURS.search(text)
    if h:
        return round(float(h.group(1)) * 60)
    return config.DEFAULT_DELAY_MINUTES


def parse_user_message(text: str) -> ParsedMessage:
    lower = text.lower()

    if _LATE.search(lower):
        return ParsedMessage(TriggerType.RUNNING_LATE, UserState.RUNNING_LATE, extract_delay_minutes(lower))
    if _TIRED.search(lower):
        state = UserState.VERY_TIRED if _VERY.search(lower) else UserState.SLIGHT_TIRED
        return ParsedMessage(TriggerType.USER_STATE, state)
    if _BREAK.search(lower):
        return ParsedMessage(TriggerType.USER_STATE, UserState.NEED_BREAK)
    if _CLOSED.search(lower):
        return ParsedMessage(TriggerType.CLOSURE)
    if _DONE.search(lower):
        return ParsedMessage(TriggerType.USER_STATE, UserState.DONE_FOR_DAY)
    if _SICK.search(lower):
        return ParsedMessage(TriggerType.USER_STATE, UserState.SICK)
    if _EARLY.search(lower):
        return ParsedMessage(TriggerType.USER_STATE, UserState.EARLY)
    if _ENERGIZED.search(lower):
        return ParsedMessage(TriggerType.USER_STATE, UserState.ENERGIZED)
    return ParsedMessage(TriggerType.USER_REQUEST)


# ── Trigger construction ─────────────────────────────────────────────────────

def upcoming_slot_ids(schedule: DaySchedule, current_time: str) -> tuple[str, ...]:
    now = time_to_minutes(current_time)
    return tuple(s.slot_id for s in schedule.slots if s.start_minutes >= now)


def find_closed_venue(message: str, schedule: DaySchedule, current_time: str) -> Optional[ClosureContext]:
    """The activity named in the message, else the next upcoming one."""
    lower = message.lower()
    for slot in schedule.slots:
        if slot.name and slot.name.lower() in lower:
            return ClosureContext(venue_id=slot.activity.activity.id, venue_name=slot.name, reason=message)

    now = time_to_minutes(current_time)
    for slot in schedule.slots:
        if slot.start_minutes >= now:
            return ClosureContext(venue_id=slot.activity.activity.id, venue_name=slot.name, reason=message)
    return None


def create_trigger_from_user_input(message: str, schedule: DaySchedule, current_time: str) -> TriggerEvent:
    parsed = parse_user_message(message)

    if parsed.type == TriggerType.RUNNING_LATE:
        severity = delay_severity(parsed.delay_minutes)
    elif parsed.user_state is not None:
        severity = user_state_severity(parsed.user_state)
    else:
        severity = TriggerSeverity.MEDIUM

    closure = (
        find_closed_venue(message, schedule, current_time)
        if parsed.type == TriggerType.CLOSURE else None
    )

    trigger = TriggerEvent(
        id=new_id(),
        type=parsed.type,
        severity=severity,
        detected_at=datetime.now(),
        source=TriggerSource.USER_INPUT,
        context=TriggerContext(
            delay_minutes=parsed.delay_minutes,
            user_state=parsed.user_state,
            user_message=message,
            closure=closure,
            current_time=current_time,
        ),
        affected_slot_ids=upcoming_slot_ids(schedule, current_time),
    )
    logger.info(
        "Trigger %s from message: type=%s severity=%s state=%s delay=%s",
        trigger.id, trigger.type.value, trigger.severity.value,
        parsed.user_state.value if parsed.user_state else None, parsed.delay_minutes,
    )
    return trigger


def create_delay_trigger(
    delay_minutes: int,
    schedule: DaySchedule,
    current_time: str,
    source: TriggerSource = TriggerSource.USER_INPUT,
) -> TriggerEvent:
    return TriggerEvent(
        id=new_id(),
        type=TriggerType.RUNNING_LATE,
        severity=delay_severity(delay_minutes),
        detected_at=datetime.now(),
        source=source,
        context=TriggerContext(delay_minutes=delay_minutes, current_time=current_time),
        affected_slot_ids=upcoming_slot_ids(schedule, current_time),
    )


def create_user_state_trigger(state: UserState, schedule: DaySchedule, current_time: str) -> TriggerEvent:
    return TriggerEvent(
        id=new_id(),
        type=TriggerType.USER_STATE,
        severity=user_state_severity(state),
        detected_at=datetime.now(),
        source=TriggerSource.USER_INPUT,
        context=TriggerContext(user_state=state, current_time=current_time),
        affected_slot_ids=upcoming_slot_ids(schedule, current_time),
    )
