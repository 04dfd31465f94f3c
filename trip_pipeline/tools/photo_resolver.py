from __future__ import annotations

import asyncio
import logging
import math
import os
import random
from typing import Dict, List, Optional, Sequence, Tuple

from trip_pipeline.schemas import Photo
from trip_pipeline.tools.photo_providers import PhotoProvider

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_PLANNER_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

MAX_VARIANTS = 3
BROADENING_SUFFIXES: Tuple[str, ...] = ("travel", "tourism")


class PhotoResolver:
    """Fan one photo query out across every configured provider.

    Each provider receives one search per query variant. The calls run
    concurrently and a failing call only costs its own share of results.
    """

    def __init__(self, providers: Sequence[PhotoProvider], *, rng: Optional[random.Random] = None):
        self.providers = [provider for provider in providers if provider.configured]
        self.rng = rng or random.Random()

    @property
    def configured(self) -> bool:
        return bool(self.providers)

    def call_counts(self) -> Dict[str, int]:
        return {provider.provider_id: provider.call_count for provider in self.providers}

    def last_errors(self) -> Dict[str, Optional[str]]:
        return {provider.provider_id: provider.last_error for provider in self.providers}

    async def resolve(self, primary_query: str, count: int, subject: Optional[str] = None) -> List[Photo]:
        """Return at most ``count`` unique photos; fewer (or none) is a normal outcome."""
        if not self.providers or count <= 0:
            return []
        variants = query_variants(primary_query, subject)
        if not variants:
            return []
        per_call = math.ceil(count / len(variants))

        calls = [
            (provider, variant)
            for provider in self.providers
            for variant in variants
        ]
        results = await asyncio.gather(
            *[provider.search(variant, per_call) for provider, variant in calls],
            return_exceptions=True,
        )

        merged: List[Photo] = []
        seen_urls: set[str] = set()
        for (provider, variant), outcome in zip(calls, results):
            if isinstance(outcome, BaseException):
                logger.warning(
                    "%s raised for '%s'; treating as empty",
                    provider.provider_id,
                    variant,
                    exc_info=outcome,
                )
                continue
            for photo in outcome:
                if not photo.url or photo.url in seen_urls:
                    continue
                seen_urls.add(photo.url)
                merged.append(photo)

        self.rng.shuffle(merged)
        logger.debug(
            "Resolved %d unique photo(s) for '%s' across %d call(s)",
            len(merged),
            primary_query,
            len(calls),
        )
        return merged[:count]


def query_variants(primary_query: str, subject: Optional[str] = None) -> List[str]:
    """Primary query, the bare subject, then broadened "<subject> travel"-style wording."""
    primary = " ".join((primary_query or "").split())
    bare = " ".join((subject or primary).split())
    ordered = [primary, bare, *(f"{bare} {suffix}" for suffix in BROADENING_SUFFIXES if bare)]

    variants: List[str] = []
    for candidate in ordered:
        if candidate and candidate.lower() not in {v.lower() for v in variants}:
            variants.append(candidate)
    return variants[:MAX_VARIANTS]
