"""
schemas/settings.py
-------------------
Validated configuration objects consumed by the builder and the reshuffling
service. Defaults come from config.py; malformed values (bad "HH:MM",
negative thresholds) are rejected at construction time.
"""

from __future__ import annotations
from enum import Enum
import re

from pydantic import BaseModel, Field, field_validator, model_validator

from travel_scheduler import config

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_hhmm(value: str) -> str:
    if not _HHMM.match(value):
        raise ValueError(f"expected 'HH:MM', got {value!r}")
    return value


class PaceMode(str, Enum):
    RELAXED   = "relaxed"
    NORMAL    = "normal"
    AMBITIOUS = "ambitious"


class TripMode(str, Enum):
    SOLO               = "solo"
    COUPLE             = "couple"
    FAMILY             = "family"
    MULTI_GENERATIONAL = "multi-generational"
    HONEYMOON          = "honeymoon"
    BABYMOON           = "babymoon"
    FRIENDS            = "friends"
    GUYS_TRIP          = "guys-trip"
    GIRLS_TRIP         = "girls-trip"
    BUSINESS           = "business"


class CommutePreference(str, Enum):
    SCENIC   = "scenic"
    SHORTEST = "shortest"
    BALANCED = "balanced"


class PaceSettings(BaseModel):
    mode: PaceMode = PaceMode.NORMAL
    day_start: str = config.DEFAULT_DAY_START
    day_end: str = config.DEFAULT_DAY_END
    max_walk_minutes: int = Field(default=config.DEFAULT_MAX_WALK_MINUTES, ge=0)

    @field_validator("day_start", "day_end")
    @classmethod
    def _valid_time(cls, v: str) -> str:
        return _check_hhmm(v)

    @model_validator(mode="after")
    def _start_before_end(self) -> "PaceSettings":
        if self.day_start >= self.day_end:
            raise ValueError("day_start must be earlier than day_end")
        return self


class ExperienceSettings(BaseModel):
    """Traveler-facing preferences that shape slot templates and commutes."""
    pace: PaceSettings = Field(default_factory=PaceSettings)
    trip_mode: TripMode = TripMode.SOLO
    commute_preference: CommutePreference = CommutePreference.BALANCED


# ── Reshuffling configuration ────────────────────────────────────────────────

class DelayThresholds(BaseModel):
    silent_buffer: int = Field(default=config.SILENT_BUFFER_MINUTES, ge=0)
    notify_user: int = Field(default=config.NOTIFY_USER_MINUTES, ge=0)
    suggest_reshuffle: int = Field(default=config.SUGGEST_RESHUFFLE_MINUTES, ge=0)
    auto_reshuffle: int = Field(default=config.AUTO_RESHUFFLE_MINUTES, ge=0)


class BookingProtection(BaseModel):
    enabled: bool = True
    minimum_buffer: int = Field(default=config.MIN_BOOKING_BUFFER_MINUTES, ge=0)


class BufferPolicy(BaseModel):
    compress_floor: int = Field(default=config.COMPRESS_FLOOR_MINUTES, ge=0)
    impact_absorb_floor: int = Field(default=config.IMPACT_ABSORB_FLOOR_MINUTES, ge=0)


class UndoSettings(BaseModel):
    max_history_size: int = Field(default=config.MAX_UNDO_HISTORY, ge=1)


class MultiDayPolicy(BaseModel):
    max_activities_per_day: int = Field(default=config.MAX_ACTIVITIES_PER_DAY, ge=1)
    impact_lookahead_days: int = Field(default=config.IMPACT_LOOKAHEAD_DAYS, ge=0)
    deferred_slot_gap: int = Field(default=config.DEFERRED_SLOT_GAP_MINUTES, ge=0)
    deferred_day_start: str = config.DEFERRED_DAY_START

    @field_validator("deferred_day_start")
    @classmethod
    def _valid_time(cls, v: str) -> str:
        return _check_hhmm(v)


class ReshuffleConfig(BaseModel):
    thresholds: DelayThresholds = Field(default_factory=DelayThresholds)
    booking_protection: BookingProtection = Field(default_factory=BookingProtection)
    buffers: BufferPolicy = Field(default_factory=BufferPolicy)
    undo: UndoSettings = Field(default_factory=UndoSettings)
    multi_day: MultiDayPolicy = Field(default_factory=MultiDayPolicy)


# ── Flexibility policy table ─────────────────────────────────────────────────

class CategoryFlexibility(BaseModel):
    can_shorten: bool = True
    max_shorten_percent: int = Field(default=30, ge=0, le=100)
    can_skip: bool = True
    skip_priority: int = Field(default=50, ge=0, le=100)   # higher = harder to skip
    can_defer: bool = True
    defer_days: int = Field(default=config.DEFAULT_DEFER_DAYS, ge=0)


def _default_categories() -> dict[str, CategoryFlexibility]:
    return {
        "museum":       CategoryFlexibility(can_shorten=True,  max_shorten_percent=30, can_skip=True,  skip_priority=40),
        "park":         CategoryFlexibility(can_shorten=True,  max_shorten_percent=50, can_skip=True,  skip_priority=30),
        "restaurant":   CategoryFlexibility(can_shorten=False, max_shorten_percent=10, can_skip=False, skip_priority=70),
        "temple":       CategoryFlexibility(can_shorten=True,  max_shorten_percent=30, can_skip=True,  skip_priority=35),
        "show":         CategoryFlexibility(can_shorten=False, max_shorten_percent=0,  can_skip=False, skip_priority=90),
        "tour":         CategoryFlexibility(can_shorten=False, max_shorten_percent=0,  can_skip=False, skip_priority=85),
        "viewpoint":    CategoryFlexibility(can_shorten=True,  max_shorten_percent=60, can_skip=True,  skip_priority=25),
        "neighborhood": CategoryFlexibility(can_shorten=True,  max_shorten_percent=50, can_skip=True,  skip_priority=35),
        "landmark":     CategoryFlexibility(can_shorten=True,  max_shorten_percent=40, can_skip=True,  skip_priority=45),
    }


class FlexibilityPolicy(BaseModel):
    """Category -> flexibility rules. Unknown categories fall back to `fallback`."""
    categories: dict[str, CategoryFlexibility] = Field(default_factory=_default_categories)
    fallback: CategoryFlexibility = Field(default_factory=CategoryFlexibility)

    def for_category(self, category: str) -> CategoryFlexibility:
        return self.categories.get(category, self.fallback)
