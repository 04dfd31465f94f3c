"""Turn a raw (possibly model-generated) day plan into a canonical ItineraryDraft."""
from __future__ import annotations

import math
import random
import re
from typing import Any, Dict, List, Optional

from trip_pipeline.agents.defaults import (
    activities_per_day,
    budget_multiplier,
    default_activity,
    round_half_up,
    slot_time,
)
from trip_pipeline.schemas import ActivitySlot, DayPlan, ItineraryDraft, TripRequest

MAX_TEXT = 200

_TIME = re.compile(r"(\d{1,2}):(\d{2})")
_NUMBER = re.compile(r"\d[\d,]*(?:\.\d+)?")


def sanitize_time(value: Any, fallback: str = "09:00") -> str:
    if not isinstance(value, str):
        return fallback
    match = _TIME.search(value)
    if not match:
        return fallback
    hours, minutes = int(match.group(1)), int(match.group(2))
    if 0 <= hours <= 23 and 0 <= minutes <= 59:
        return f"{hours:02d}:{minutes:02d}"
    return fallback


def sanitize_string(value: Any, default: str) -> str:
    if not isinstance(value, str):
        return default
    trimmed = value.strip()
    return trimmed[:MAX_TEXT] if trimmed else default


def sanitize_cost(value: Any, multiplier: float = 1.0, rng: Optional[random.Random] = None) -> int:
    """Coerce any cost representation into a non-negative integer.

    Numbers are trusted as-is (rounded, floored at zero). Strings are read for
    "free" markers, then an embedded amount (scaled by ``multiplier``), then
    "variable"/"varies"; anything else gets a small pseudo-random estimate.
    """
    source = rng or random
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        amount = _finite(value)
        if amount is not None:
            return max(0, round_half_up(amount))
    elif isinstance(value, str):
        lowered = value.strip().lower()
        if "free" in lowered or "no cost" in lowered or lowered == "0":
            return 0
        match = _NUMBER.search(lowered)
        if match:
            amount = _finite(float(match.group(0).replace(",", "")) * multiplier)
            if amount is not None:
                return max(0, round_half_up(amount))
        if "variable" in lowered or "varies" in lowered:
            return int(source.random() * 50 * multiplier) + 10
    return int(source.random() * 30 * multiplier) + 15


def _finite(value: Any) -> Optional[float]:
    """Float form of ``value``, or None when it overflows or is not finite."""
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def sanitize_itinerary(
    raw: Any,
    request: TripRequest,
    rng: Optional[random.Random] = None,
) -> Optional[ItineraryDraft]:
    """Return a draft with exactly ``request.span_days`` days, or None when ``days`` is unusable.

    Dates always come from the request; whatever the raw draft claims is ignored.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("days"), list):
        return None

    source = rng or random
    raw_days: List[Any] = raw["days"]
    multiplier = budget_multiplier(request.budget)
    minimum = activities_per_day(request.pace)
    destination = request.destination

    days: List[DayPlan] = []
    for day_index in range(request.span_days):
        raw_day = raw_days[day_index] if day_index < len(raw_days) else {}
        activities: List[ActivitySlot] = []

        for entry in _raw_activities(raw_day):
            index = len(activities)
            activities.append(
                ActivitySlot(
                    time=sanitize_time(entry.get("time"), slot_time(index)),
                    name=sanitize_string(entry.get("activity") or entry.get("name"), "Explore local area"),
                    location=sanitize_string(entry.get("location"), f"{destination} - City Center"[:MAX_TEXT]),
                    duration=sanitize_string(entry.get("duration"), "2 hours"),
                    cost=sanitize_cost(entry.get("cost"), multiplier, source),
                    notes=sanitize_string(entry.get("notes"), "Enjoy this activity!"),
                )
            )

        while len(activities) < minimum:
            index = len(activities)
            activities.append(
                ActivitySlot(
                    time=slot_time(index),
                    name=default_activity(request.interests, day_index * minimum + index),
                    location=f"{destination} - Popular Area"[:MAX_TEXT],
                    duration="2 hours",
                    cost=int(source.random() * 30 * multiplier) + 10,
                    notes="Explore and enjoy!",
                )
            )

        days.append(DayPlan(date=request.day_date(day_index), activities=activities))

    return ItineraryDraft(days=days)


def _raw_activities(raw_day: Any) -> List[Dict[str, Any]]:
    if isinstance(raw_day, dict):
        entries = raw_day.get("activities")
    elif isinstance(raw_day, list):
        # Some models return each day as a bare list of activities.
        entries = raw_day
    else:
        entries = None
    if not isinstance(entries, list):
        return []
    return [entry for entry in entries if isinstance(entry, dict)]
