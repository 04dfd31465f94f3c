# trip_pipeline/llm.py
import asyncio
import os
import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import OpenAI

from trip_pipeline.errors import GenerativeResponseInvalid

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_PLANNER_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

SYSTEM_PROMPT = """You are a travel expert who plans day-by-day itineraries.
Return ONLY valid JSON. Do not wrap it in Markdown.
"""

ITINERARY_TEMPLATE = """Create a {days}-day itinerary for {destination}.

User preferences:
- Interests: {interests}
- Budget: {budget}
- Travel pace: {pace}

Do NOT include dates in your response; the dates are assigned separately.
Use SPECIFIC, photo-searchable names for every activity:
- Specific landmark names (e.g. "Eiffel Tower", not "famous tower")
- Exact location names (e.g. "Shibuya District", not "downtown area")
- Recognizable attractions (e.g. "Louvre Museum", not "art museum")

Respond with a JSON object of EXACTLY this shape:
{{
  "days": [
    {{
      "activities": [
        {{
          "time": "09:00",
          "activity": "Visit Senso-ji Temple",
          "location": "Asakusa, Tokyo",
          "duration": "2 hours",
          "cost": 0,
          "notes": "Free admission, arrive early to avoid crowds"
        }}
      ]
    }}
  ]
}}

The "days" array must contain exactly {days} entries, in trip order.
Plan about {per_day} activities per day. Costs are realistic integers in USD.
"""

_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?")
_OBJECT = re.compile(r"\{[\s\S]*\}")


def build_itinerary_prompt(
    destination: str,
    days: int,
    interests: List[str],
    budget: str,
    pace: str,
    per_day: int,
) -> str:
    return ITINERARY_TEMPLATE.format(
        destination=destination,
        days=days,
        interests=", ".join(interests) if interests else "general sightseeing",
        budget=budget,
        pace=pace,
        per_day=per_day,
    )


def extract_json_object(raw: Any) -> Dict[str, Any]:
    """Pull the first ``{...}`` span out of model text and parse it.

    Raises ``GenerativeResponseInvalid`` when no JSON object can be recovered.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise GenerativeResponseInvalid("empty response from model")
    text = _FENCE.sub("", raw.strip()).replace("```", "")
    match = _OBJECT.search(text)
    if not match:
        raise GenerativeResponseInvalid("no JSON object in model response")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise GenerativeResponseInvalid(f"malformed JSON from model: {exc}") from exc
    if not isinstance(parsed, dict):
        raise GenerativeResponseInvalid("model response is not a JSON object")
    return parsed


class GenerativeClient:
    """Thin wrapper over the OpenAI chat API that returns raw completion text."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
    ):
        self.model = model
        self.timeout = timeout
        if api_key:
            self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        else:
            self._client = None
            logger.warning("OPENAI_API_KEY not set; itinerary drafts will use the rule-based generator")

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def complete(self, prompt: str) -> str:
        """Run one completion off the event loop, bounded by ``timeout`` seconds."""
        if self._client is None:
            raise RuntimeError("generative client is not configured")
        logger.info("Invoking LLM model %s for itinerary draft", self.model)
        return await asyncio.wait_for(asyncio.to_thread(self._complete_sync, prompt), timeout=self.timeout)

    def _complete_sync(self, prompt: str) -> str:
        resp = self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0.4,
            response_format={"type": "json_object"},
        )
        return resp.choices[0].message.content or ""
