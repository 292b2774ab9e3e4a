import pytest
from pydantic import ValidationError

from travel_scheduler.modules.planning.schedule_validator import (
    ScheduleValidator, calculate_pace_score, pace_score_from_totals,
)
from travel_scheduler.schemas.activity import Cost, WeatherForecast
from travel_scheduler.schemas.schedule import DayType, WarningSeverity, WarningType
from travel_scheduler.schemas.settings import (
    CategoryFlexibility, DelayThresholds, ExperienceSettings, FlexibilityPolicy, MultiDayPolicy,
    PaceMode, PaceSettings, TripMode, UndoSettings,
)

from factories import day, slot


def _types(warnings):
    return [w.type for w in warnings]


def test_overlap_and_rush():
    validator = ScheduleValidator()
    overlap = validator.generate_warnings([slot("a", "09:00"), slot("b", "09:30")])
    rush = validator.generate_warnings([slot("a", "09:00"), slot("b", "10:05")])
    relaxed = validator.generate_warnings([slot("a", "09:00"), slot("b", "10:10")])

    assert _types(overlap) == [WarningType.OVERLAP]
    assert overlap[0].affected_slots == ["a", "b"]
    assert _types(rush) == [WarningType.RUSH]
    assert rush[0].severity == WarningSeverity.INFO
    assert relaxed == []


def test_long_commute():
    far = day(slot("a", "09:00"), slot("b", "12:00", lng=0.2))
    warnings = [w for w in far.warnings if w.type == WarningType.LONG_COMMUTE]
    assert warnings and warnings[0].affected_slots == ["b"]


def test_weather_warnings_only_for_sensitive_outdoor():
    validator = ScheduleValidator()
    slots = [
        slot("park", "09:00", is_outdoor=True, weather_sensitive=True),
        slot("museum", "11:00"),
    ]

    rainy = validator.generate_warnings(slots, WeatherForecast(condition="Light rain", temperature=38))

    assert _types(rainy) == [WarningType.WEATHER, WarningType.WEATHER]
    assert [w.severity for w in rainy] == [WarningSeverity.WARNING, WarningSeverity.INFO]
    assert validator.generate_warnings(slots, WeatherForecast(condition="clear", temperature_max=20)) == []


def test_relaxed_pace_warning():
    validator = ScheduleValidator(ExperienceSettings(pace=PaceSettings(mode=PaceMode.RELAXED)))
    slots = [slot("a", "09:00", duration=200), slot("b", "13:00", duration=200)]
    assert WarningType.PACE in _types(validator.generate_warnings(slots))


def test_late_night_for_family_only():
    slots = [slot("show", "20:00", duration=90)]
    family = ScheduleValidator(ExperienceSettings(trip_mode=TripMode.FAMILY))
    friends = ScheduleValidator(ExperienceSettings(trip_mode=TripMode.FRIENDS))

    assert _types(family.generate_warnings(slots)) == [WarningType.LATE_NIGHT]
    assert friends.generate_warnings(slots) == []


def test_summarize_rederives_totals():
    schedule = day(
        slot("a", "09:00", estimated_cost=Cost(20, "EUR"), neighborhood="Marais"),
        slot("b", "11:00", category="park", estimated_cost=Cost(5, "EUR"), neighborhood="Marais"),
        slot("c", "13:00", duration=30, neighborhood="Bastille"),
    )

    assert schedule.total_activity_time == 150
    assert schedule.total_commute_time == 0
    assert schedule.total_cost == Cost(25, "EUR")
    assert schedule.neighborhoods_visited == ["Marais", "Bastille"]
    assert schedule.categories_covered == ["museum", "park"]
    assert schedule.pace_score == 25


# ── Pace score ───────────────────────────────────────────────────────────────

def test_pace_score_reference_values():
    assert calculate_pace_score([]) == 50
    assert calculate_pace_score([slot("a", "09:00")], DayType.ARRIVAL) == 50
    assert pace_score_from_totals(600, 0) == 100
    assert pace_score_from_totals(900, 0) == 100
    assert pace_score_from_totals(300, 0) == 50
    assert pace_score_from_totals(300, 120) == 30
    assert pace_score_from_totals(60, 600) == 0


def test_pace_score_monotonic():
    for activity in range(0, 901, 30):
        scores = [pace_score_from_totals(activity, commute) for commute in range(0, 301, 15)]
        assert all(0 <= s <= 100 for s in scores)
        assert scores == sorted(scores, reverse=True)

    for commute in range(0, 301, 30):
        scores = [pace_score_from_totals(activity, commute) for activity in range(0, 901, 15)]
        assert scores == sorted(scores)


# ── Settings validation ──────────────────────────────────────────────────────

@pytest.mark.parametrize("build", [
    lambda: PaceSettings(day_start="9am"),
    lambda: PaceSettings(day_start="25:00"),
    lambda: PaceSettings(day_start="18:00", day_end="09:00"),
    lambda: PaceSettings(max_walk_minutes=-5),
    lambda: DelayThresholds(silent_buffer=-1),
    lambda: UndoSettings(max_history_size=0),
    lambda: MultiDayPolicy(deferred_day_start="10h"),
    lambda: CategoryFlexibility(max_shorten_percent=120),
])
def test_malformed_settings_rejected(build):
    with pytest.raises(ValidationError):
        build()


def test_flexibility_policy_fallback():
    policy = FlexibilityPolicy()
    assert policy.for_category("show").can_skip is False
    assert policy.for_category("escape-room") == policy.fallback
