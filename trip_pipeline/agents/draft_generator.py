"""Produce an unvalidated multi-day activity plan.

The generative path is attempted only when a model client is configured and
the caller is inside their rate limit. Every failure on that path falls back
to the deterministic rule-based generator, so ``generate`` never raises.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from trip_pipeline.agents.defaults import (
    AREA_LABELS,
    DURATION_BY_PACE,
    activities_per_day,
    budget_multiplier,
    default_activity,
    round_half_up,
    slot_time,
)
from trip_pipeline.errors import GenerativeResponseInvalid
from trip_pipeline.llm import GenerativeClient, build_itinerary_prompt, extract_json_object
from trip_pipeline.schemas import TripRequest
from trip_pipeline.tools.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_PLANNER_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False


class DraftState(str, enum.Enum):
    ATTEMPT_GENERATIVE = "attempt_generative"
    FALLBACK_MOCK = "fallback_mock"


@dataclass
class DraftResult:
    raw: Dict[str, Any]
    source: str  # "openai" or "mock"
    fallback_reason: Optional[str] = None

    @property
    def ai_generated(self) -> bool:
        return self.source == "openai"


class DraftGenerator:
    def __init__(self, client: Optional[GenerativeClient], rate_limiter: RateLimiter):
        self.client = client
        self.rate_limiter = rate_limiter

    def initial_state(self, user_id: str) -> tuple[DraftState, Optional[str]]:
        if self.client is None or not self.client.configured:
            return DraftState.FALLBACK_MOCK, "no generative provider configured"
        if not self.rate_limiter.is_allowed(user_id):
            return DraftState.FALLBACK_MOCK, "caller rate limited"
        return DraftState.ATTEMPT_GENERATIVE, None

    async def generate(self, request: TripRequest, user_id: str) -> DraftResult:
        state, reason = self.initial_state(user_id)
        if state is DraftState.ATTEMPT_GENERATIVE:
            try:
                raw = await self._generate_with_model(request)
                logger.info("Generative draft parsed with %d day group(s)", len(raw["days"]))
                return DraftResult(raw=raw, source="openai")
            except (GenerativeResponseInvalid, asyncio.TimeoutError) as exc:
                reason = f"invalid generative response: {str(exc) or type(exc).__name__}"
                logger.warning("Generative draft unusable (%s); falling back to mock", reason)
            except Exception as exc:
                reason = f"generative call failed: {exc}"
                logger.warning("Generative draft call failed; falling back to mock", exc_info=True)
        else:
            logger.info("Skipping generative draft (%s); using mock generator", reason)

        return DraftResult(raw=generate_mock_draft(request), source="mock", fallback_reason=reason)

    async def _generate_with_model(self, request: TripRequest) -> Dict[str, Any]:
        if self.client is None:
            raise RuntimeError("generative client is not configured")
        prompt = build_itinerary_prompt(
            destination=request.destination,
            days=request.span_days,
            interests=list(request.interests),
            budget=request.budget,
            pace=request.pace,
            per_day=activities_per_day(request.pace),
        )
        text = await self.client.complete(prompt)
        parsed = extract_json_object(text)
        days = parsed.get("days")
        if not isinstance(days, list):
            raise GenerativeResponseInvalid("response has no 'days' list")
        if not days:
            raise GenerativeResponseInvalid("response 'days' list is empty")
        return parsed


def generate_mock_draft(request: TripRequest) -> Dict[str, Any]:
    """Deterministic offline plan in the same raw shape the model is asked for."""
    per_day = activities_per_day(request.pace)
    multiplier = budget_multiplier(request.budget)
    duration = DURATION_BY_PACE.get(request.pace, "2 hours")

    days: List[Dict[str, Any]] = []
    for day_index in range(request.span_days):
        activities = []
        for slot in range(per_day):
            activities.append(
                {
                    "time": slot_time(slot),
                    "activity": default_activity(request.interests, day_index * per_day + slot),
                    "location": f"{request.destination} - {AREA_LABELS[slot % len(AREA_LABELS)]}",
                    "duration": duration,
                    "cost": round_half_up((20 + slot * 15) * multiplier),
                    "notes": "Check opening hours and enjoy!",
                }
            )
        days.append({"date": request.day_date(day_index).isoformat(), "activities": activities})
    return {"days": days}
