# trip_pipeline/orchestrator.py
from __future__ import annotations

import asyncio
import os
import random
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from trip_pipeline.agents.activity_matcher import ActivityPhotoMatcher, day_theme_query
from trip_pipeline.agents.draft_generator import DraftGenerator, generate_mock_draft
from trip_pipeline.agents.sanitizer import sanitize_itinerary
from trip_pipeline.errors import NoItineraryProducible
from trip_pipeline.llm import GenerativeClient
from trip_pipeline.schemas import (
    ActivitySlot,
    EnrichedActivity,
    EnrichedDay,
    EnrichedItinerary,
    ItineraryDraft,
    Photo,
    PhotoStats,
    TripRequest,
)
from trip_pipeline.settings import Settings, get_settings
from trip_pipeline.tools.photo_providers import PhotoProvider, build_photo_providers
from trip_pipeline.tools.photo_resolver import PhotoResolver
from trip_pipeline.tools.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_PLANNER_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

PHOTO_ERROR = "Photos could not be loaded"


def hero_queries(destination: str) -> List[str]:
    return [
        f"{destination} skyline landmark",
        f"{destination} aerial view",
        f"{destination} tourism",
        destination,
    ]


# ---------- photo enrichment ----------
class EnrichmentOrchestrator:
    """Attach hero, day-theme and activity photos to a sanitized draft.

    Day-theme and activity lookups share one semaphore of ``max_concurrency``
    slots, so a long itinerary cannot multiply outbound calls past the
    providers' quotas. Each lookup's own provider fan-out still runs in parallel.
    """

    def __init__(
        self,
        resolver: PhotoResolver,
        matcher: Optional[ActivityPhotoMatcher] = None,
        *,
        max_concurrency: int = 4,
        pool_size: int = 4,
    ):
        self.resolver = resolver
        self.matcher = matcher or ActivityPhotoMatcher(resolver)
        self.max_concurrency = max(1, max_concurrency)
        self.pool_size = max(1, pool_size)

    async def enrich(
        self,
        draft: ItineraryDraft,
        request: TripRequest,
        *,
        title: Optional[str] = None,
        provider: str = "mock",
        ai_generated: bool = False,
    ) -> EnrichedItinerary:
        destination = request.destination
        base: Dict[str, Any] = {
            "destination": destination,
            "title": title or _title_for(destination, ai_generated),
            "provider": provider,
            "ai_generated": ai_generated,
        }
        calls_before = self.resolver.call_counts()
        errors_before = self.resolver.last_errors()

        try:
            days, hero = await self._attach_photos(draft, destination)
        except Exception as exc:
            logger.exception("Photo enrichment failed for %s: %s", destination, exc)
            return EnrichedItinerary(
                **base,
                days=[_bare_day(day.date, day.activities) for day in draft.days],
                hero_image=None,
                has_photos=False,
                photo_error=PHOTO_ERROR,
                photo_stats=PhotoStats(
                    per_provider_call_counts=self._call_delta(calls_before),
                    last_error=str(exc) or type(exc).__name__,
                ),
            )

        total = _count_photos(hero, days)
        stats = PhotoStats(
            total_photo_count=total,
            generated_at=datetime.now(timezone.utc),
            per_provider_call_counts=self._call_delta(calls_before),
            last_error=self._new_error(errors_before),
        )
        logger.info(
            "Enriched %d day(s) for %s with %d photo(s) (calls: %s)",
            len(days),
            destination,
            total,
            stats.per_provider_call_counts or "none",
        )
        return EnrichedItinerary(
            **base,
            days=days,
            hero_image=hero,
            has_photos=total > 0,
            photo_error=None,
            photo_stats=stats,
        )

    async def _attach_photos(self, draft: ItineraryDraft, destination: str) -> tuple[List[EnrichedDay], Optional[Photo]]:
        hero = await self.resolve_hero(destination)
        pool = await self._destination_pool(destination, hero)

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _theme(activities: Sequence[ActivitySlot]) -> Optional[Photo]:
            async with semaphore:
                return await self._theme_image(activities, destination)

        themes = await asyncio.gather(*[_theme(day.activities) for day in draft.days])

        async def _activity_photos(activity: ActivitySlot) -> List[Photo]:
            async with semaphore:
                return await self.matcher.resolve_for_activity(activity.name, activity.location, destination)

        per_day = await asyncio.gather(
            *[
                asyncio.gather(*[_activity_photos(activity) for activity in day.activities])
                for day in draft.days
            ]
        )

        days: List[EnrichedDay] = []
        pool_cursor = 0
        for day, theme, activity_photos in zip(draft.days, themes, per_day):
            activities: List[EnrichedActivity] = []
            for activity, photos in zip(day.activities, activity_photos):
                main_photo = photos[0] if photos else None
                if main_photo is None and pool:
                    main_photo = pool[pool_cursor % len(pool)]
                    pool_cursor += 1
                activities.append(
                    EnrichedActivity(**activity.model_dump(), photos=list(photos), main_photo=main_photo)
                )
            days.append(EnrichedDay(date=day.date, theme_image=theme, activities=activities))
        return days, hero

    async def resolve_hero(self, destination: str) -> Optional[Photo]:
        for query in hero_queries(destination):
            photos = await self.resolver.resolve(query, 1, subject=destination)
            if photos:
                return photos[0]
        return None

    async def _destination_pool(self, destination: str, hero: Optional[Photo]) -> List[Photo]:
        pool: List[Photo] = [hero] if hero else []
        if not self.resolver.configured:
            return pool
        fetched = await self.resolver.resolve(f"{destination} travel", self.pool_size, subject=destination)
        seen = {photo.url for photo in pool}
        for photo in fetched:
            if photo.url not in seen:
                seen.add(photo.url)
                pool.append(photo)
        return pool

    async def _theme_image(self, activities: Sequence[ActivitySlot], destination: str) -> Optional[Photo]:
        first = activities[0].name if activities else None
        photos = await self.resolver.resolve(day_theme_query(first, destination), 1, subject=destination)
        return photos[0] if photos else None

    def _call_delta(self, before: Dict[str, int]) -> Dict[str, int]:
        return {
            provider_id: count - before.get(provider_id, 0)
            for provider_id, count in self.resolver.call_counts().items()
        }

    def _new_error(self, before: Dict[str, Optional[str]]) -> Optional[str]:
        latest: Optional[str] = None
        for provider_id, error in self.resolver.last_errors().items():
            if error and error != before.get(provider_id):
                latest = error
        return latest


# ---------- full pipeline ----------
class TripPipeline:
    """Draft generation, sanitization and photo enrichment wired together."""

    def __init__(
        self,
        generator: DraftGenerator,
        orchestrator: EnrichmentOrchestrator,
        *,
        providers: Sequence[PhotoProvider] = (),
        rng: Optional[random.Random] = None,
    ):
        self.generator = generator
        self.orchestrator = orchestrator
        self.providers = list(providers)
        self.rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, *, rng: Optional[random.Random] = None) -> "TripPipeline":
        settings = settings or get_settings()
        rng = rng or random.Random()
        providers = build_photo_providers(
            unsplash_key=settings.unsplash_access_key,
            pixabay_key=settings.pixabay_api_key,
            pexels_key=settings.pexels_api_key,
            timeout=settings.photo_timeout,
        )
        resolver = PhotoResolver(providers, rng=rng)
        client = GenerativeClient(
            settings.openai_api_key,
            model=settings.llm_model,
            timeout=settings.llm_timeout,
        )
        limiter = RateLimiter(settings.ai_max_requests, settings.ai_window_seconds)
        orchestrator = EnrichmentOrchestrator(
            resolver,
            max_concurrency=settings.photo_concurrency,
            pool_size=settings.photo_pool_size,
        )
        return cls(DraftGenerator(client, limiter), orchestrator, providers=providers, rng=rng)

    async def draft(self, request: TripRequest, user_id: str) -> tuple[ItineraryDraft, str]:
        """Return a sanitized draft and the label of the path that produced it."""
        result = await self.generator.generate(request, user_id)
        draft = sanitize_itinerary(result.raw, request, self.rng)
        source = result.source

        if (draft is None or not draft.days) and source != "mock":
            logger.warning("Generative draft failed sanitization; regenerating with mock generator")
            draft = sanitize_itinerary(generate_mock_draft(request), request, self.rng)
            source = "mock"

        if draft is None or not draft.days:
            raise NoItineraryProducible(
                f"could not produce a {request.span_days}-day itinerary for {request.destination}"
            )
        return draft, source

    async def plan(self, request: TripRequest, user_id: str) -> EnrichedItinerary:
        logger.info(
            "Itinerary request: destination=%s, dates=%s-%s, budget=%s, pace=%s, interests=%s",
            request.destination,
            request.start_date,
            request.end_date,
            request.budget,
            request.pace,
            ", ".join(request.interests) or "none",
        )
        draft, source = await self.draft(request, user_id)
        ai_generated = source == "openai"
        return await self.orchestrator.enrich(
            draft,
            request,
            provider=source,
            ai_generated=ai_generated,
        )

    async def regenerate_photos(
        self,
        itinerary: EnrichedItinerary | ItineraryDraft,
        request: TripRequest,
    ) -> EnrichedItinerary:
        """Re-run photo enrichment for an existing itinerary without touching its activities."""
        if isinstance(itinerary, EnrichedItinerary):
            return await self.orchestrator.enrich(
                itinerary.to_draft(),
                request,
                title=itinerary.title,
                provider=itinerary.provider,
                ai_generated=itinerary.ai_generated,
            )
        return await self.orchestrator.enrich(itinerary, request)

    def status(self) -> Dict[str, Any]:
        client = self.generator.client
        return {
            "ai": {
                "openai": "configured" if client is not None and client.configured else "not configured",
                "rate_limiter": {
                    "max_requests": self.generator.rate_limiter.max_requests,
                    "window_seconds": self.generator.rate_limiter.window_seconds,
                },
            },
            "photos": {
                provider.provider_id: {
                    "status": "configured" if provider.configured else "not configured",
                    "calls": provider.call_count,
                    "last_error": provider.last_error,
                }
                for provider in self.providers
            },
        }


# ---------- helpers ----------
def _title_for(destination: str, ai_generated: bool) -> str:
    return f"{'AI-Generated' if ai_generated else 'Custom'} Trip to {destination}"


def _bare_day(day_date, activities: Sequence[ActivitySlot]) -> EnrichedDay:
    return EnrichedDay(
        date=day_date,
        activities=[EnrichedActivity(**activity.model_dump()) for activity in activities],
    )


def _count_photos(hero: Optional[Photo], days: Sequence[EnrichedDay]) -> int:
    total = 1 if hero else 0
    for day in days:
        if day.theme_image:
            total += 1
        for activity in day.activities:
            if activity.photos:
                total += len(activity.photos)
            elif activity.main_photo:
                total += 1
    return total
