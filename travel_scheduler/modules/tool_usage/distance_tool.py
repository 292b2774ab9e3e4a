"""
modules/tool_usage/distance_tool.py
-------------------------------------
Arithmetic tool: great-circle distance between two coordinates and a heuristic
commute estimate on top of it. Local computation, no routing API.

Commute durations come from a fixed speed-per-mode table (config.py):
    walking  ceil(d / 80)
    transit  ceil(d / 200) + 10    (wait / transfer)
    taxi     ceil(d / 400) + 5     (pickup)
    mixed    ceil(d / 150) + 5
"""

from __future__ import annotations
from dataclasses import replace
import logging
import math

from travel_scheduler import config
from travel_scheduler.schemas.activity import CandidateActivity
from travel_scheduler.schemas.schedule import CommuteInfo, CommuteMode, ScheduledActivity
from travel_scheduler.schemas.settings import CommutePreference, ExperienceSettings

logger = logging.getLogger(__name__)

_EARTH_RADIUS_M = 6_371_000.0

# Mode-selection cut-offs (meters)
_SCENIC_WALK_FACTOR = 1.5
_SHORTEST_TAXI_ABOVE_M = 3000
_BALANCED_TRANSIT_ABOVE_M = 5000


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Compute great-circle distance between two points using the Haversine formula.

    Args:
        lat1, lng1: Coordinates of point A (decimal degrees).
        lat2, lng2: Coordinates of point B (decimal degrees).

    Returns:
        Distance in meters.
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    return 2 * _EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def select_mode(
    distance_m: float,
    max_walk_minutes: int = config.DEFAULT_MAX_WALK_MINUTES,
    preference: CommutePreference = CommutePreference.BALANCED,
) -> CommuteMode:
    """Pick a travel mode from distance and the traveler's commute preference."""
    max_walk_m = max_walk_minutes * config.WALKING_SPEED_M_PER_MIN
    if distance_m <= max_walk_m:
        return CommuteMode.WALKING

    if preference == CommutePreference.SCENIC and distance_m <= max_walk_m * _SCENIC_WALK_FACTOR:
        return CommuteMode.WALKING

    if preference == CommutePreference.SHORTEST:
        return CommuteMode.TAXI if distance_m > _SHORTEST_TAXI_ABOVE_M else CommuteMode.TRANSIT

    return CommuteMode.TRANSIT if distance_m > _BALANCED_TRANSIT_ABOVE_M else CommuteMode.MIXED


def estimate_commute_minutes(distance_m: float, mode: CommuteMode) -> int:
    if mode == CommuteMode.WALKING:
        return math.ceil(distance_m / config.WALKING_SPEED_M_PER_MIN)
    if mode == CommuteMode.TRANSIT:
        return math.ceil(distance_m / config.TRANSIT_SPEED_M_PER_MIN) + config.TRANSIT_WAIT_MINUTES
    if mode == CommuteMode.TAXI:
        return math.ceil(distance_m / config.TAXI_SPEED_M_PER_MIN) + config.TAXI_PICKUP_MINUTES
    return math.ceil(distance_m / config.MIXED_SPEED_M_PER_MIN) + config.MIXED_OVERHEAD_MINUTES


class DistanceTool:
    """
    Wraps distance and commute estimation for one traveler's settings.
    Provides a consistent interface matching the Tool-usage Module pattern.
    """

    def __init__(self, settings: ExperienceSettings | None = None):
        self.settings = settings or ExperienceSettings()

    def distance_between(self, a: CandidateActivity, b: CandidateActivity) -> float:
        return haversine_m(a.location.lat, a.location.lng, b.location.lat, b.location.lng)

    def commute_between(self, from_activity: CandidateActivity, to_activity: CandidateActivity) -> CommuteInfo:
        """
        Build the directed commute edge between two consecutive activities.

        Returns:
            CommuteInfo with distance rounded to whole meters; walking legs
            carry a short route note.
        """
        distance = self.distance_between(from_activity, to_activity)
        mode = select_mode(
            distance,
            self.settings.pace.max_walk_minutes,
            self.settings.commute_preference,
        )
        duration = estimate_commute_minutes(distance, mode)
        logger.debug(
            "commute %s -> %s: %.0fm by %s (%d min)",
            from_activity.id, to_activity.id, distance, mode.value, duration,
        )
        return CommuteInfo(
            from_activity_id=from_activity.id,
            to_activity_id=to_activity.id,
            duration_minutes=duration,
            distance_meters=round(distance),
            mode=mode,
            walking_route=(
                f"Walk from {from_activity.neighborhood} to {to_activity.neighborhood}"
                if mode == CommuteMode.WALKING else None
            ),
        )

    def relink(self, slots: list[ScheduledActivity]) -> list[ScheduledActivity]:
        """
        Return copies of `slots` whose commute_from_previous edges match the
        current adjacency. The first slot never has an inbound commute.
        Times are left untouched.
        """
        linked: list[ScheduledActivity] = []
        for idx, slot in enumerate(slots):
            commute = (
                self.commute_between(slots[idx - 1].activity.activity, slot.activity.activity)
                if idx > 0 else None
            )
            linked.append(replace(slot, commute_from_previous=commute))
        return linked
