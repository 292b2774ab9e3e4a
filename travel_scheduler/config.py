"""
config.py
---------
Central configuration for the travel scheduler.
Every tunable is read from an environment variable with a typed default, so a
deployment can re-tune heuristics without code changes.
"""

import os

# ── Day boundaries ────────────────────────────────────────────────────────────
DEFAULT_DAY_START: str = os.getenv("DEFAULT_DAY_START", "09:00")
DEFAULT_DAY_END: str   = os.getenv("DEFAULT_DAY_END",   "21:00")
FAMILY_CURFEW: str     = os.getenv("FAMILY_CURFEW",     "21:00")   # family trips end here
ROMANTIC_EARLIEST: str = os.getenv("ROMANTIC_EARLIEST", "10:00")   # honeymoon / babymoon start

# ── Commute heuristics (meters per minute) ────────────────────────────────────
DEFAULT_MAX_WALK_MINUTES: int = int(os.getenv("DEFAULT_MAX_WALK_MINUTES", "20"))
WALKING_SPEED_M_PER_MIN: float = float(os.getenv("WALKING_SPEED_M_PER_MIN", "80"))
TRANSIT_SPEED_M_PER_MIN: float = float(os.getenv("TRANSIT_SPEED_M_PER_MIN", "200"))
TAXI_SPEED_M_PER_MIN: float    = float(os.getenv("TAXI_SPEED_M_PER_MIN",    "400"))
MIXED_SPEED_M_PER_MIN: float   = float(os.getenv("MIXED_SPEED_M_PER_MIN",   "150"))
TRANSIT_WAIT_MINUTES: int      = int(os.getenv("TRANSIT_WAIT_MINUTES", "10"))
TAXI_PICKUP_MINUTES: int       = int(os.getenv("TAXI_PICKUP_MINUTES",  "5"))
MIXED_OVERHEAD_MINUTES: int    = int(os.getenv("MIXED_OVERHEAD_MINUTES", "5"))

# ── Allocation ────────────────────────────────────────────────────────────────
SLOT_OVERFLOW_TOLERANCE_MINUTES: int = int(os.getenv("SLOT_OVERFLOW_TOLERANCE_MINUTES", "30"))
SAME_NEIGHBORHOOD_BONUS: float       = float(os.getenv("SAME_NEIGHBORHOOD_BONUS", "10"))
REPEAT_CATEGORY_PENALTY: float       = float(os.getenv("REPEAT_CATEGORY_PENALTY", "5"))
MAX_ALTERNATIVES_PER_SLOT: int       = int(os.getenv("MAX_ALTERNATIVES_PER_SLOT", "3"))
DEFAULT_CURRENCY: str                = os.getenv("DEFAULT_CURRENCY", "USD")

# ── Validation ────────────────────────────────────────────────────────────────
RUSH_BUFFER_MINUTES: int     = int(os.getenv("RUSH_BUFFER_MINUTES", "10"))
LONG_COMMUTE_MINUTES: int    = int(os.getenv("LONG_COMMUTE_MINUTES", "45"))
RELAXED_MAX_ACTIVITY_MINUTES: int = int(os.getenv("RELAXED_MAX_ACTIVITY_MINUTES", "360"))
COLD_LIMIT_C: float          = float(os.getenv("COLD_LIMIT_C", "5"))
HOT_LIMIT_C: float           = float(os.getenv("HOT_LIMIT_C", "35"))
PACE_FULL_DAY_MINUTES: int   = int(os.getenv("PACE_FULL_DAY_MINUTES", "600"))
PACE_COMMUTE_PENALTY_CAP: int = int(os.getenv("PACE_COMMUTE_PENALTY_CAP", "20"))
PACE_COMMUTE_REFERENCE_MINUTES: int = int(os.getenv("PACE_COMMUTE_REFERENCE_MINUTES", "120"))

# ── Reshuffling thresholds (minutes) ──────────────────────────────────────────
SILENT_BUFFER_MINUTES: int     = int(os.getenv("SILENT_BUFFER_MINUTES", "10"))
NOTIFY_USER_MINUTES: int       = int(os.getenv("NOTIFY_USER_MINUTES", "15"))
SUGGEST_RESHUFFLE_MINUTES: int = int(os.getenv("SUGGEST_RESHUFFLE_MINUTES", "30"))
AUTO_RESHUFFLE_MINUTES: int    = int(os.getenv("AUTO_RESHUFFLE_MINUTES", "60"))
MIN_BOOKING_BUFFER_MINUTES: int = int(os.getenv("MIN_BOOKING_BUFFER_MINUTES", "15"))
COMPRESS_FLOOR_MINUTES: int    = int(os.getenv("COMPRESS_FLOOR_MINUTES", "5"))
IMPACT_ABSORB_FLOOR_MINUTES: int = int(os.getenv("IMPACT_ABSORB_FLOOR_MINUTES", "10"))
DEFAULT_DELAY_MINUTES: int     = int(os.getenv("DEFAULT_DELAY_MINUTES", "15"))

# ── Undo ledger ───────────────────────────────────────────────────────────────
MAX_UNDO_HISTORY: int = int(os.getenv("MAX_UNDO_HISTORY", "10"))

# ── Multi-day policy ──────────────────────────────────────────────────────────
MAX_ACTIVITIES_PER_DAY: int      = int(os.getenv("MAX_ACTIVITIES_PER_DAY", "5"))
IMPACT_LOOKAHEAD_DAYS: int       = int(os.getenv("IMPACT_LOOKAHEAD_DAYS", "2"))
DEFAULT_DEFER_DAYS: int          = int(os.getenv("DEFAULT_DEFER_DAYS", "2"))
DEFERRED_SLOT_GAP_MINUTES: int   = int(os.getenv("DEFERRED_SLOT_GAP_MINUTES", "15"))
DEFERRED_DAY_START: str          = os.getenv("DEFERRED_DAY_START", "10:00")

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE: str  = os.getenv("LOG_FILE", "")
