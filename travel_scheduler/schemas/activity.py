"""
schemas/activity.py
-------------------
Candidate activities and restaurants as delivered by the upstream candidate
pool. The scheduler only reads these and re-ranks copies; it never mutates the
pool's objects.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class TimeOfDay(str, Enum):
    EARLY_MORNING = "early-morning"
    MORNING       = "morning"
    AFTERNOON     = "afternoon"
    EVENING       = "evening"
    NIGHT         = "night"


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    BRUNCH    = "brunch"
    LUNCH     = "lunch"
    DINNER    = "dinner"
    SNACK     = "snack"


@dataclass
class Location:
    lat: float = 0.0
    lng: float = 0.0


@dataclass
class Cost:
    amount: float = 0.0
    currency: str = "USD"


@dataclass
class BookingInfo:
    """Booking requirement for a venue. `confirmed` means a firm reservation exists."""
    required: bool = False
    confirmed: bool = False
    reference: str = ""


@dataclass
class CandidateActivity:
    """
    An activity or restaurant from the candidate pool.

    Restaurants are the candidates carrying `meal_types`; everything else is
    treated as a regular activity by the allocator.
    """
    id: str
    name: str
    category: str = "landmark"
    location: Location = field(default_factory=Location)
    neighborhood: str = ""
    recommended_duration: int = 60                 # minutes
    best_time_of_day: list[TimeOfDay] = field(default_factory=list)
    meal_types: Optional[list[MealType]] = None
    is_outdoor: bool = False
    weather_sensitive: bool = False
    estimated_cost: Optional[Cost] = None
    booking: Optional[BookingInfo] = None

    @property
    def is_restaurant(self) -> bool:
        return self.meal_types is not None


@dataclass
class ScoredActivity:
    """A candidate plus its desirability score (higher is better)."""
    activity: CandidateActivity
    total_score: float = 0.0
    score_breakdown: dict[str, float] = field(default_factory=dict)


@dataclass
class WeatherForecast:
    """
    Daily forecast. `temperature` is the representative value; when only a
    range is known, `temperature_max` is used by the validator.
    """
    condition: str = "clear"
    temperature: Optional[float] = None
    temperature_max: Optional[float] = None
    temperature_min: Optional[float] = None
    precipitation_probability: float = 0.0

    @property
    def reference_temperature(self) -> Optional[float]:
        if self.temperature is not None:
            return self.temperature
        return self.temperature_max
