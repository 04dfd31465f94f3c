"""Activity categorisation and per-activity photo lookup."""
from __future__ import annotations

import re
from typing import List, Optional, Tuple

from trip_pipeline.schemas import Photo
from trip_pipeline.tools.photo_resolver import PhotoResolver

DEFAULT_CATEGORY = "tourist attraction"

# First matching row wins.
_CATEGORY_TABLE: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("museum", "gallery", "exhibition"), "museum"),
    (("temple", "shrine", "church", "cathedral", "mosque", "basilica", "monastery"), "religious site"),
    (("market", "shopping", "bazaar", "mall"), "market"),
    (("park", "garden", "nature", "zoo"), "park"),
    (("food", "restaurant", "cafe", "café", "cuisine", "dinner", "lunch", "breakfast", "cooking"), "restaurant food"),
    (("beach", "coast", "seaside", "bay"), "beach"),
    (("mountain", "hiking", "hike", "trek", "trail"), "mountain outdoor"),
    (("palace", "castle", "fort", "citadel"), "historic monument"),
)

# Day theme wording per category; culture-heavy buckets share one theme.
_DAY_THEMES = {
    "museum": "culture history",
    "religious site": "culture history",
    "historic monument": "culture history",
    "park": "nature park",
    "mountain outdoor": "nature park",
    "beach": "beach coast",
    "restaurant food": "food market",
    "market": "shopping street",
}

_PLACEHOLDER_SUFFIXES = ("city center", "popular area", "downtown", "cultural district", "scenic area")


def categorize_activity(text: Optional[str]) -> str:
    lowered = (text or "").lower()
    for keywords, category in _CATEGORY_TABLE:
        if any(re.search(rf"\b{re.escape(keyword)}", lowered) for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def day_theme_query(first_activity: Optional[str], destination: str) -> str:
    if not first_activity:
        return f"{destination} city"
    theme = _DAY_THEMES.get(categorize_activity(first_activity), "attractions")
    return f"{destination} {theme}"


def activity_candidates(name: str, location: Optional[str], destination: str) -> List[str]:
    """Ordered photo queries: location, "<category> <destination>", "<name> <destination>", destination."""
    ordered: List[str] = []
    if _is_specific_location(location, destination):
        ordered.append(location.strip())  # type: ignore[union-attr]
    ordered.append(f"{categorize_activity(name)} {destination}")
    if name and name.strip():
        ordered.append(f"{name.strip()} {destination}")
    ordered.append(destination)

    candidates: List[str] = []
    for term in ordered:
        term = " ".join(term.split())
        if term and term.lower() not in {c.lower() for c in candidates}:
            candidates.append(term)
    return candidates


def _is_specific_location(location: Optional[str], destination: str) -> bool:
    if not isinstance(location, str):
        return False
    trimmed = location.strip()
    if len(trimmed) < 3 or trimmed.lower() == destination.strip().lower():
        return False
    # Generated placeholders such as "Paris - City Center" say nothing about the activity.
    lowered = trimmed.lower()
    return not any(lowered.endswith(f"- {suffix}") for suffix in _PLACEHOLDER_SUFFIXES)


class ActivityPhotoMatcher:
    PHOTOS_PER_ACTIVITY = 2

    def __init__(self, resolver: PhotoResolver):
        self.resolver = resolver

    async def resolve_for_activity(self, name: str, location: Optional[str], destination: str) -> List[Photo]:
        """Try each candidate query in order; an empty result means "use a pooled photo"."""
        if not self.resolver.configured:
            return []
        for term in activity_candidates(name, location, destination):
            photos = await self.resolver.resolve(term, self.PHOTOS_PER_ACTIVITY)
            if photos:
                return photos
        return []
