"""Rule tables shared by the fallback generator and the sanitizer."""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Tuple

BUDGET_MULTIPLIERS: Dict[str, float] = {
    "budget": 0.6,
    "mid-range": 1.0,
    "luxury": 2.5,
}

# Also the minimum number of activities a sanitized day must carry.
ACTIVITIES_PER_DAY: Dict[str, int] = {
    "relaxed": 2,
    "moderate": 3,
    "active": 4,
}

DURATION_BY_PACE: Dict[str, str] = {
    "relaxed": "3 hours",
    "moderate": "2 hours",
    "active": "1.5 hours",
}

AREA_LABELS: Tuple[str, ...] = ("Downtown", "Cultural District", "Popular Area", "Scenic Area")

_INTEREST_ACTIVITIES: Dict[str, Tuple[str, ...]] = {
    "culture": ("Visit local museum", "Explore historic district", "Cultural center visit"),
    "food": ("Try local cuisine", "Food market visit", "Cooking experience"),
    "nature": ("Park visit", "Nature walk", "Scenic viewpoint"),
    "adventure": ("Local hiking", "Adventure activity", "Outdoor exploration"),
    "history": ("Historical site", "Monument visit", "Heritage tour"),
    "art": ("Art gallery", "Street art tour", "Creative workshop"),
    "shopping": ("Local market browsing", "Shopping street stroll", "Artisan boutique visit"),
    "nightlife": ("Evening food stalls", "Live music venue", "Rooftop bar at sunset"),
    "relaxation": ("Spa afternoon", "Riverside stroll", "Botanical garden visit"),
}

_GENERIC_ACTIVITIES: Tuple[str, ...] = (
    "Explore local area",
    "Visit popular attraction",
    "Cultural experience",
    "Local exploration",
)


def budget_multiplier(tier: str) -> float:
    return BUDGET_MULTIPLIERS.get(tier, 1.0)


def activities_per_day(pace: str) -> int:
    return ACTIVITIES_PER_DAY.get(pace, ACTIVITIES_PER_DAY["moderate"])


def default_activity(interests: Iterable[str], index: int) -> str:
    """Round-robin over the declared interests, stepping through each interest's list."""
    declared: List[str] = [i for i in interests if i]
    if declared:
        interest = declared[index % len(declared)].strip().lower()
        options = _INTEREST_ACTIVITIES.get(interest)
        if options:
            return options[(index // len(declared)) % len(options)]
    return _GENERIC_ACTIVITIES[index % len(_GENERIC_ACTIVITIES)]


def slot_time(index: int) -> str:
    return f"{(9 + index * 2) % 24:02d}:00"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
