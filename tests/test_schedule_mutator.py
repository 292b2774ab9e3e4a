import pytest

from travel_scheduler.modules.reoptimization.flexibility import activity_flexibility
from travel_scheduler.modules.reoptimization.schedule_mutator import ScheduleMutator, shift_slots
from travel_scheduler.schemas.activity import BookingInfo
from travel_scheduler.schemas.reshuffling import ChangeType

from factories import day, scored, slot, starts


@pytest.fixture
def mutator():
    return ScheduleMutator()


def _locked_in_middle():
    return day(slot("a", "09:00"), slot("booked", "10:20", locked=True), slot("c", "11:40"))


# ── compress_buffer ──────────────────────────────────────────────────────────

def test_compress_absorbs_only_above_floor(mutator):
    # the only slack is 8 min between a and b; 5 min floor leaves 3 to borrow
    schedule = day(slot("a", "09:00"), slot("b", "10:08"), slot("c", "11:08"))

    result = mutator.compress_buffer(schedule, 20)

    assert result.applied_minutes == 3
    assert result.remaining_delay == 17
    assert starts(result.schedule) == {"a": "09:00", "b": "10:05", "c": "11:05"}
    assert {c.type for c in result.changes} == {ChangeType.TIME_SHIFT}


def test_compress_without_slack_is_noop(mutator):
    schedule = day(slot("a", "09:00"), slot("b", "10:03"))
    result = mutator.compress_buffer(schedule, 10)
    assert result.schedule is schedule
    assert result.remaining_delay == 10


def test_compress_respects_from_time(mutator):
    schedule = day(slot("a", "09:00"), slot("b", "10:30"), slot("c", "12:00"))
    result = mutator.compress_buffer(schedule, 10, from_time="11:00")
    assert starts(result.schedule) == {"a": "09:00", "b": "10:30", "c": "11:50"}


# ── shorten / skip ───────────────────────────────────────────────────────────

def test_shorten_caps_at_policy_limit(mutator):
    schedule = day(slot("a", "09:00", duration=90), slot("b", "10:30"))

    result = mutator.shorten_activity(schedule, "a", 1000)

    a = result.schedule.slots[0]
    assert a.actual_duration >= 90 * (1 - activity_flexibility(a).max_shorten_percent / 100)
    assert a.actual_duration == 63
    assert result.applied_minutes == 27
    assert result.schedule.slots[1].scheduled_start == "10:03"
    assert result.changes[0].type == ChangeType.DURATION_CHANGE


def test_shorten_non_shortenable_is_noop(mutator):
    schedule = day(slot("show", "09:00", category="show"))
    assert mutator.shorten_activity(schedule, "show", 10).schedule is schedule


def test_skip_frees_duration_plus_inbound_commute(mutator):
    schedule = day(slot("a", "09:00"), slot("b", "10:13", lng=0.009), slot("c", "11:30"))
    b = schedule.find_slot("b")
    assert b.commute_minutes == 13

    result = mutator.skip_activity(schedule, "b", "Time constraint")

    assert [s.slot_id for s in result.schedule.slots] == ["a", "c"]
    assert schedule.total_activity_time - result.schedule.total_activity_time == b.actual_duration
    shift = schedule.find_slot("c").start_minutes - result.schedule.find_slot("c").start_minutes
    assert shift == b.actual_duration + b.commute_minutes
    assert result.changes[0].type == ChangeType.ACTIVITY_REMOVED
    assert result.removed == [b]


def test_find_best_activity_to_skip(mutator):
    schedule = day(
        slot("early", "08:00", category="viewpoint"),
        slot("museum", "10:00"),
        slot("view", "12:00", category="viewpoint", duration=30),
        slot("park", "13:00", category="park", duration=90),
        slot("booked", "15:00", category="viewpoint", locked=True),
    )
    # viewpoint has the lowest skip priority; "early" has already started
    assert mutator.find_best_activity_to_skip(schedule, "09:00") == "view"
    assert mutator.find_best_activity_to_skip(schedule, "16:00") is None


def test_confirmed_reservation_is_never_picked_to_skip(mutator):
    schedule = day(
        slot("view", "10:00", category="viewpoint", booking=BookingInfo(required=True, confirmed=True)),
        slot("museum", "12:00"),
    )
    assert mutator.find_best_activity_to_skip(schedule, "09:00") == "museum"


# ── locked slots never move ──────────────────────────────────────────────────

@pytest.mark.parametrize("operation", [
    lambda m, s: m.compress_buffer(s, 30),
    lambda m, s: m.shorten_activity(s, "a", 20),
    lambda m, s: m.shorten_activity(s, "booked", 20),
    lambda m, s: m.skip_activity(s, "a", "test"),
    lambda m, s: m.skip_activity(s, "booked", "test"),
    lambda m, s: m.replace_activity(s, "booked"),
    lambda m, s: m.emergency_reroute(s, "09:30"),
])
def test_locked_slot_invariant(mutator, operation):
    schedule = _locked_in_middle()
    before = schedule.find_slot("booked")

    after = operation(mutator, schedule).schedule.find_slot("booked")

    assert after is not None
    assert (after.scheduled_start, after.actual_duration) == (before.scheduled_start, before.actual_duration)
    assert after.activity == before.activity


def test_shift_stops_at_first_locked_slot():
    schedule = _locked_in_middle()
    shifted = shift_slots(schedule.slots, 0, 15)
    assert [s.scheduled_start for s in shifted] == ["09:15", "10:20", "11:40"]


# ── content moves ────────────────────────────────────────────────────────────

def test_swap_exchanges_content_not_times(mutator):
    schedule = day(slot("a", "09:00", duration=60), slot("b", "11:00", duration=90))

    result = mutator.swap_activity_order(schedule, "a", "b")

    a, b = result.schedule.slots
    assert (a.slot_id, a.activity.activity.id, a.scheduled_start, a.actual_duration) == ("a", "b", "09:00", 90)
    assert (b.slot_id, b.activity.activity.id, b.scheduled_start, b.actual_duration) == ("b", "a", "11:00", 60)
    assert [c.type for c in result.changes] == [ChangeType.ORDER_SWAP, ChangeType.ORDER_SWAP]


def test_replace_uses_first_unused_alternative(mutator):
    schedule = day(
        slot("a", "09:00", alternatives=[scored("b"), scored("orsay", duration=45)]),
        slot("b", "11:00"),
    )

    result = mutator.replace_activity(schedule, "a")

    a = result.schedule.slots[0]
    assert a.activity.activity.id == "orsay"
    assert a.actual_duration == 45
    assert [alt.activity.id for alt in a.alternatives] == ["b"]
    assert result.changes[0].type == ChangeType.ACTIVITY_REPLACED


def test_replace_without_alternative_skips(mutator):
    schedule = day(slot("a", "09:00"), slot("b", "11:00"))
    result = mutator.replace_activity(schedule, "a")
    assert [s.slot_id for s in result.schedule.slots] == ["b"]
    assert result.changes[0].type == ChangeType.ACTIVITY_REMOVED


def test_shift_schedule(mutator):
    schedule = day(slot("a", "09:00"), slot("b", "11:00"), slot("c", "13:00"))
    result = mutator.shift_schedule(schedule, "b", 30)
    assert starts(result.schedule) == {"a": "09:00", "b": "11:30", "c": "13:30"}
    assert len(result.changes) == 2


def test_emergency_keeps_finished_and_locked(mutator):
    schedule = day(
        slot("done", "08:00"),
        slot("ongoing", "09:30"),
        slot("booked", "12:00", locked=True),
        slot("later", "14:00"),
    )

    result = mutator.emergency_reroute(schedule, "10:00")

    assert [s.slot_id for s in result.schedule.slots] == ["done", "booked"]
    assert [s.slot_id for s in result.removed] == ["ongoing", "later"]
    assert result.schedule.slots[1].commute_from_previous is not None


@pytest.mark.parametrize("operation", [
    lambda m, s: m.shorten_activity(s, "missing", 10),
    lambda m, s: m.skip_activity(s, "missing", "x"),
    lambda m, s: m.swap_activity_order(s, "a", "missing"),
    lambda m, s: m.replace_activity(s, "missing"),
    lambda m, s: m.shift_schedule(s, "missing", 10),
])
def test_unknown_slot_is_noop(mutator, operation):
    schedule = day(slot("a", "09:00"))
    result = operation(mutator, schedule)
    assert result.schedule is schedule
    assert result.changes == []
