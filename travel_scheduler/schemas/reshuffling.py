"""
schemas/reshuffling.py
----------------------
Data structures for the real-time reshuffling pipeline:

    TriggerEvent -> ImpactAnalysis -> ReshuffleStrategy -> ReshuffleResult
                                                         -> ReshuffleEvent (undo ledger)

Triggers are created fresh per disruption and never mutated. Impact analyses
are computed snapshots and are not persisted beyond the request.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from travel_scheduler.schemas.schedule import DaySchedule, ScheduledActivity


# ─────────────────────────────────────────────────────────────────────────────
# Trigger taxonomy
# ─────────────────────────────────────────────────────────────────────────────

class TriggerType(str, Enum):
    RUNNING_LATE = "running_late"
    USER_STATE   = "user_state"
    CLOSURE      = "closure"
    USER_REQUEST = "user_request"


class TriggerSeverity(str, Enum):
    LOW      = "low"
    MEDIUM   = "medium"
    HIGH     = "high"
    CRITICAL = "critical"


class TriggerSource(str, Enum):
    USER_INPUT = "user_input"
    LOCATION   = "location"
    API        = "api"
    PREDICTION = "prediction"


class UserState(str, Enum):
    ENERGIZED    = "energized"
    EARLY        = "early"
    SLIGHT_TIRED = "slight_tired"
    RUNNING_LATE = "running_late"
    VERY_TIRED   = "very_tired"
    NEED_BREAK   = "need_break"
    DONE_FOR_DAY = "done_for_day"
    SICK         = "sick"


@dataclass(frozen=True)
class ClosureContext:
    venue_id: str
    venue_name: str = ""
    reason: str = ""


@dataclass(frozen=True)
class TriggerContext:
    delay_minutes: Optional[int] = None
    user_state: Optional[UserState] = None
    user_message: Optional[str] = None
    closure: Optional[ClosureContext] = None
    current_time: Optional[str] = None          # "HH:MM" when the trigger was detected


@dataclass(frozen=True)
class TriggerEvent:
    id: str
    type: TriggerType
    severity: TriggerSeverity
    detected_at: datetime
    source: TriggerSource
    context: TriggerContext
    affected_slot_ids: tuple[str, ...] = ()


# ─────────────────────────────────────────────────────────────────────────────
# Impact analysis
# ─────────────────────────────────────────────────────────────────────────────

class ImpactType(str, Enum):
    DELAYED    = "delayed"
    IMPOSSIBLE = "impossible"


class CascadeLevel(str, Enum):
    ISOLATED    = "isolated"
    PARTIAL_DAY = "partial_day"
    REST_OF_DAY = "rest_of_day"
    MULTI_DAY   = "multi_day"


class UrgencyLevel(str, Enum):
    IMMEDIATE   = "immediate"
    WITHIN_HOUR = "within_hour"
    TODAY       = "today"


class BookingRiskLevel(str, Enum):
    SAFE      = "safe"
    TIGHT     = "tight"
    AT_RISK   = "at_risk"
    WILL_MISS = "will_miss"


class RecoveryType(str, Enum):
    SHORTEN = "shorten"
    SKIP    = "skip"


@dataclass
class RecoveryOption:
    type: RecoveryType
    description: str
    time_saved: int                     # minutes
    tradeoff: str = ""


@dataclass
class AffectedActivity:
    slot_id: str
    activity: ScheduledActivity
    impact_type: ImpactType
    impact_severity: float              # 0-100
    can_recover: bool
    recovery_options: list[RecoveryOption] = field(default_factory=list)
    incoming_delay: int = 0             # cumulative delay reaching this slot


@dataclass
class BookingRisk:
    slot_id: str
    risk_level: BookingRiskLevel
    latest_arrival_time: str
    current_eta: str
    buffer_minutes: int
    refundable: bool = False


@dataclass
class ImpactAnalysis:
    trigger_id: str
    analyzed_at: datetime
    affected_activities: list[AffectedActivity]
    bookings_at_risk: list[BookingRisk]
    cascade_effect: CascadeLevel
    urgency: UrgencyLevel
    total_delay_minutes: int
    can_auto_resolve: bool
    summary: str = ""
    affected_day_indices: list[int] = field(default_factory=list)

    @property
    def has_critical_booking(self) -> bool:
        return any(
            b.risk_level in (BookingRiskLevel.AT_RISK, BookingRiskLevel.WILL_MISS)
            for b in self.bookings_at_risk
        )


# ─────────────────────────────────────────────────────────────────────────────
# Strategies, changes and results
# ─────────────────────────────────────────────────────────────────────────────

class ReshuffleStrategy(str, Enum):
    COMPRESS_BUFFER   = "compress_buffer"
    SHORTEN_ACTIVITY  = "shorten_activity"
    SKIP_ACTIVITY     = "skip_activity"
    REPLACE_ACTIVITY  = "replace_activity"
    EMERGENCY_REROUTE = "emergency_reroute"
    NO_ACTION         = "no_action"


class ChangeType(str, Enum):
    TIME_SHIFT        = "time_shift"
    DURATION_CHANGE   = "duration_change"
    ACTIVITY_REMOVED  = "activity_removed"
    ACTIVITY_ADDED    = "activity_added"
    ACTIVITY_REPLACED = "activity_replaced"
    ORDER_SWAP        = "order_swap"
    DAY_MOVED         = "day_moved"


@dataclass
class ScheduleChange:
    """Before/after record of one slot-level change."""
    id: str
    type: ChangeType
    slot_id: str
    activity_name: str
    description: str
    before: dict = field(default_factory=dict)
    after: dict = field(default_factory=dict)


@dataclass
class ReshuffleResult:
    id: str
    trigger_id: str
    strategy: ReshuffleStrategy
    changes: list[ScheduleChange]
    explanation: str
    time_saved_minutes: int = 0
    bookings_protected: int = 0
    activities_affected: int = 0
    requires_confirmation: bool = True
    confidence: float = 0.8
    undo_token: Optional[str] = None
    can_undo: bool = False


@dataclass
class ReshuffleEvent:
    """Undo ledger entry."""
    id: str
    triggered_at: datetime
    trigger: TriggerEvent
    strategy_used: ReshuffleStrategy
    changes_made: list[ScheduleChange]
    previous_schedule: DaySchedule
    new_schedule: DaySchedule
    undone_at: Optional[datetime] = None


class ScheduleStatus(str, Enum):
    ON_TRACK        = "on_track"
    MINOR_DELAY     = "minor_delay"
    NEEDS_ATTENTION = "needs_attention"
    CRITICAL        = "critical"


# ─────────────────────────────────────────────────────────────────────────────
# Service responses
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class CheckTriggersResponse:
    triggers_detected: list[TriggerEvent]
    suggested_actions: list[ReshuffleResult]
    schedule_status: ScheduleStatus
    summary: Optional[str] = None


@dataclass
class ApplyReshuffleResponse:
    success: bool
    updated_schedule: Optional[DaySchedule]
    changes: list[ScheduleChange]
    undo_token: Optional[str]
    message: str
    result: Optional[ReshuffleResult] = None


@dataclass
class UndoReshuffleResponse:
    success: bool
    restored_schedule: Optional[DaySchedule]
    message: str


# ─────────────────────────────────────────────────────────────────────────────
# Multi-day
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class MultiDaySchedule:
    trip_id: str
    days: list[DaySchedule] = field(default_factory=list)


@dataclass
class DeferredActivity:
    activity: ScheduledActivity
    from_day: int
    to_day: int


@dataclass
class MultiDayResult:
    schedule: MultiDaySchedule
    changes: list[ScheduleChange] = field(default_factory=list)
    success: bool = True
    deferred: list[DeferredActivity] = field(default_factory=list)

    @property
    def deferred_count(self) -> int:
        return len(self.deferred)
