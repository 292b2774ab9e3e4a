import pytest

from travel_scheduler.modules.reoptimization.trigger_detector import (
    create_delay_trigger, create_trigger_from_user_input, create_user_state_trigger,
    delay_severity, extract_delay_minutes, parse_user_message,
)
from travel_scheduler.schemas.reshuffling import (
    TriggerSeverity, TriggerSource, TriggerType, UserState,
)

from factories import day, slot


@pytest.mark.parametrize("message,type_,state", [
    ("Running 20 minutes late",             TriggerType.RUNNING_LATE, UserState.RUNNING_LATE),
    ("We're behind, traffic is awful",      TriggerType.RUNNING_LATE, UserState.RUNNING_LATE),
    ("I'm so tired",                        TriggerType.USER_STATE,   UserState.VERY_TIRED),
    ("kids are exhausted",                  TriggerType.USER_STATE,   UserState.VERY_TIRED),
    ("a bit tired",                         TriggerType.USER_STATE,   UserState.SLIGHT_TIRED),
    ("Can we take a break?",                TriggerType.USER_STATE,   UserState.NEED_BREAK),
    ("let's slow down a little",            TriggerType.USER_STATE,   UserState.NEED_BREAK),
    ("The museum is closed",                TriggerType.CLOSURE,      None),
    ("Let's call it a day",                 TriggerType.USER_STATE,   UserState.DONE_FOR_DAY),
    ("heading back to the hotel",           TriggerType.USER_STATE,   UserState.DONE_FOR_DAY),
    ("I feel sick",                         TriggerType.USER_STATE,   UserState.SICK),
    ("not feeling well",                    TriggerType.USER_STATE,   UserState.SICK),
    ("We're ahead of schedule",             TriggerType.USER_STATE,   UserState.EARLY),
    ("Feeling great today!",                TriggerType.USER_STATE,   UserState.ENERGIZED),
    ("Can we find a restaurant nearby?",    TriggerType.USER_REQUEST, None),
])
def test_parse_user_message(message, type_, state):
    parsed = parse_user_message(message)
    assert parsed.type == type_
    assert parsed.user_state == state


def test_keywords_match_whole_words_only():
    assert parse_user_message("the restaurant was great").type == TriggerType.USER_REQUEST
    assert parse_user_message("breakfast was lovely").type == TriggerType.USER_REQUEST
    assert parse_user_message("we saw the chocolate factory").type == TriggerType.USER_REQUEST


@pytest.mark.parametrize("text,minutes", [
    ("late by 20 min", 20),
    ("running 45 minutes late", 45),
    ("about 1.5 hours behind", 90),
    ("2 hrs late", 120),
    ("running late", 15),
])
def test_extract_delay_minutes(text, minutes):
    assert extract_delay_minutes(text) == minutes


@pytest.mark.parametrize("delay,severity", [
    (5, TriggerSeverity.LOW),
    (10, TriggerSeverity.LOW),
    (11, TriggerSeverity.MEDIUM),
    (30, TriggerSeverity.MEDIUM),
    (31, TriggerSeverity.HIGH),
    (60, TriggerSeverity.HIGH),
    (61, TriggerSeverity.CRITICAL),
])
def test_delay_severity(delay, severity):
    assert delay_severity(delay) == severity


def test_affected_slots_are_those_starting_from_now():
    schedule = day(slot("a", "09:00"), slot("b", "11:00"), slot("c", "13:00"))

    trigger = create_delay_trigger(25, schedule, "11:00", TriggerSource.LOCATION)

    assert trigger.affected_slot_ids == ("b", "c")
    assert trigger.severity == TriggerSeverity.MEDIUM
    assert trigger.source == TriggerSource.LOCATION
    assert trigger.context.delay_minutes == 25
    assert trigger.context.current_time == "11:00"


def test_running_late_message_severity_follows_delay():
    schedule = day(slot("a", "09:00"))
    trigger = create_trigger_from_user_input("running 90 minutes late", schedule, "08:00")
    assert trigger.severity == TriggerSeverity.CRITICAL
    assert trigger.context.delay_minutes == 90
    assert trigger.context.user_message == "running 90 minutes late"


def test_user_state_trigger_severity():
    schedule = day(slot("a", "09:00"))
    assert create_user_state_trigger(UserState.SICK, schedule, "08:00").severity == TriggerSeverity.CRITICAL
    assert create_user_state_trigger(UserState.VERY_TIRED, schedule, "08:00").severity == TriggerSeverity.HIGH
    assert create_user_state_trigger(UserState.ENERGIZED, schedule, "08:00").severity == TriggerSeverity.LOW


def test_closure_names_the_mentioned_venue():
    schedule = day(slot("a", "09:00", name="Louvre"), slot("b", "11:00", name="Orangerie"))

    named = create_trigger_from_user_input("The Orangerie is closed today", schedule, "08:00")
    unnamed = create_trigger_from_user_input("it's shut", schedule, "10:30")

    assert named.context.closure.venue_id == "b"
    assert named.context.closure.venue_name == "Orangerie"
    assert unnamed.context.closure.venue_id == "b"      # next upcoming slot
