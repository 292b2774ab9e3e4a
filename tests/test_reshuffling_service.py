import pytest

from travel_scheduler.modules.reoptimization.reshuffling_service import ReshufflingService
from travel_scheduler.modules.reoptimization.trigger_detector import create_delay_trigger
from travel_scheduler.schemas.reshuffling import (
    ChangeType, ReshuffleStrategy, ScheduleStatus, TriggerSeverity, UserState,
)
from travel_scheduler.schemas.settings import ReshuffleConfig, UndoSettings

from factories import day, scored, slot


def _tight_day():
    # 8 min of slack between a and b, none after
    return day(slot("a", "09:00"), slot("b", "10:08"), slot("c", "11:08"))


# ── handle_delay ─────────────────────────────────────────────────────────────

def test_twenty_minute_delay_escalates_to_shorten(service):
    schedule = _tight_day()

    compressed = service.mutator.compress_buffer(schedule, 20)
    assert (compressed.applied_minutes, compressed.remaining_delay) == (3, 17)

    response = service.handle_delay(20, schedule, "08:50")

    assert response.success
    assert response.result.strategy == ReshuffleStrategy.SHORTEN_ACTIVITY
    durations = {s.slot_id: s.actual_duration for s in response.updated_schedule.slots}
    assert durations == {"a": 42, "b": 58, "c": 60}
    assert sum(c.before["duration"] - c.after["duration"]
               for c in response.changes if c.type == ChangeType.DURATION_CHANGE) == 20
    assert response.result.requires_confirmation
    assert response.result.can_undo
    assert response.undo_token in service.ledger


def test_small_delay_is_compressed_silently(service):
    schedule = day(slot("a", "09:00"), slot("b", "10:30"))

    response = service.handle_delay(10, schedule, "08:55")

    assert response.result.strategy == ReshuffleStrategy.COMPRESS_BUFFER
    assert not response.result.requires_confirmation
    assert response.updated_schedule.find_slot("b").scheduled_start == "10:20"


def test_at_risk_booking_is_protected(service):
    schedule = day(slot("show", "10:00", category="show", locked=True), slot("walk", "11:15"))

    response = service.handle_delay(20, schedule, "09:30")

    assert response.result.strategy == ReshuffleStrategy.SHORTEN_ACTIVITY
    assert response.result.bookings_protected == 1
    assert response.updated_schedule.find_slot("show") == schedule.find_slot("show")
    assert response.updated_schedule.find_slot("walk").actual_duration == 42


# ── handle_user_message ──────────────────────────────────────────────────────

def test_sick_clears_everything_not_finished_or_locked(service):
    schedule = day(
        slot("a", "09:00"),
        slot("booked", "10:30", locked=True),
        slot("c", "12:00"),
        slot("d", "14:00"),
    )

    response = service.handle_user_message("I feel sick", schedule, "11:00")

    event = service.ledger.peek(response.undo_token)
    assert event.trigger.severity == TriggerSeverity.CRITICAL
    assert event.trigger.context.user_state == UserState.SICK
    assert response.result.strategy == ReshuffleStrategy.EMERGENCY_REROUTE
    assert [s.slot_id for s in response.updated_schedule.slots] == ["a", "booked"]
    assert response.result.time_saved_minutes == 120


def test_closure_swaps_in_alternative(service):
    schedule = day(
        slot("louvre", "10:00", name="Louvre", alternatives=[scored("orsay", name="Musee d'Orsay")]),
        slot("b", "12:00"),
    )

    response = service.handle_user_message("The Louvre is closed today", schedule, "08:30")

    assert response.result.strategy == ReshuffleStrategy.REPLACE_ACTIVITY
    assert response.updated_schedule.find_slot("louvre").name == "Musee d'Orsay"
    assert "Musee d'Orsay" in response.message


def test_closure_of_locked_booking_changes_nothing(service):
    schedule = day(slot("louvre", "10:00", name="Louvre", locked=True, alternatives=[scored("orsay")]))

    response = service.handle_user_message("Louvre is closed", schedule, "08:30")

    assert response.changes == []
    assert response.updated_schedule == schedule
    assert "protected booking" in response.message


def test_need_break_skips_lowest_priority(service):
    schedule = day(slot("a", "10:00"), slot("view", "11:30", category="viewpoint"), slot("c", "13:00"))
    response = service.handle_user_message("Can we take a break?", schedule, "09:30")
    assert response.result.strategy == ReshuffleStrategy.SKIP_ACTIVITY
    assert [s.slot_id for s in response.updated_schedule.slots] == ["a", "c"]


# ── check_triggers / apply_reshuffle ─────────────────────────────────────────

def test_check_triggers_previews_without_recording(service):
    schedule = _tight_day()

    response = service.check_triggers(schedule, "08:50", user_reported_issue="running 20 minutes late")

    assert len(response.triggers_detected) == 1
    assert response.schedule_status == ScheduleStatus.MINOR_DELAY
    assert response.summary == "Detected 1 issue"
    assert response.suggested_actions[0].strategy == ReshuffleStrategy.SHORTEN_ACTIVITY
    assert response.suggested_actions[0].undo_token is None
    assert len(service.ledger) == 0

    applied = service.apply_reshuffle(schedule, response.triggers_detected[0].id)
    assert applied.success
    assert len(service.ledger) == 1


def test_check_triggers_combines_message_and_state(service):
    schedule = _tight_day()
    response = service.check_triggers(
        schedule, "08:50", user_reported_issue="a bit tired", user_state=UserState.SICK,
    )
    assert len(response.triggers_detected) == 2
    assert response.schedule_status == ScheduleStatus.CRITICAL
    assert response.summary == "Detected 2 issues"


def test_check_triggers_on_track(service):
    response = service.check_triggers(_tight_day(), "08:50")
    assert response.schedule_status == ScheduleStatus.ON_TRACK
    assert response.summary is None


def test_get_suggested_reshuffle(service):
    result = service.get_suggested_reshuffle("so tired", _tight_day(), "08:50")
    assert result.strategy == ReshuffleStrategy.SHORTEN_ACTIVITY
    assert not result.can_undo


def test_apply_reshuffle_with_strategy_override_and_chosen_slot(service):
    schedule = _tight_day()
    trigger = create_delay_trigger(30, schedule, "08:50")

    response = service.apply_reshuffle(schedule, trigger, ReshuffleStrategy.SKIP_ACTIVITY, skip_slot_id="c")

    assert [s.slot_id for s in response.updated_schedule.slots] == ["a", "b"]
    assert response.result.time_saved_minutes == 60


def test_unknown_trigger_id_fails(service):
    schedule = _tight_day()
    response = service.apply_reshuffle(schedule, "no-such-trigger")
    assert not response.success
    assert response.updated_schedule is schedule
    assert response.undo_token is None


@pytest.mark.parametrize("strategy", list(ReshuffleStrategy))
def test_every_strategy_dispatches(service, strategy):
    schedule = _tight_day()
    trigger = create_delay_trigger(20, schedule, "08:50")
    impact = service.analyze_impact(trigger, schedule)

    new_schedule, result = service.apply_strategy(strategy, trigger, impact, schedule)

    assert result.strategy == strategy
    assert result.explanation
    assert result.trigger_id == trigger.id


# ── undo ─────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("message", ["running 20 minutes late", "I feel sick", "need a break"])
def test_undo_restores_previous_schedule(service, message):
    schedule = _tight_day()

    applied = service.handle_user_message(message, schedule, "08:50")
    assert applied.updated_schedule != schedule

    undone = service.undo_reshuffle(applied.undo_token)

    assert undone.success
    assert undone.restored_schedule == schedule
    assert not service.undo_reshuffle(applied.undo_token).success


def test_undo_token_evicted_after_history_limit():
    service = ReshufflingService(config=ReshuffleConfig(undo=UndoSettings(max_history_size=2)), clock=lambda: "08:50")
    schedule = _tight_day()

    tokens = [service.handle_delay(20, schedule).undo_token for _ in range(3)]

    assert not service.undo_reshuffle(tokens[0]).success
    assert service.undo_reshuffle(tokens[2]).success
    assert service.undo_reshuffle(tokens[1]).success


def test_unknown_undo_token(service):
    response = service.undo_reshuffle("nope")
    assert not response.success
    assert response.restored_schedule is None
