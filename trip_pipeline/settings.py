"""Runtime configuration read from the environment (and ``.env`` when present)."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_PLANNER_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

# Load .env file if present
load_dotenv()


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    llm_timeout: float = 30.0
    unsplash_access_key: Optional[str] = None
    pixabay_api_key: Optional[str] = None
    pexels_api_key: Optional[str] = None
    photo_timeout: float = 5.0
    ai_max_requests: int = 15
    ai_window_seconds: float = 60.0
    photo_concurrency: int = 4
    photo_pool_size: int = 4

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=_secret("OPENAI_API_KEY"),
            llm_model=os.getenv("TRIP_PLANNER_LLM_MODEL") or cls.llm_model,
            llm_timeout=_number("TRIP_PLANNER_LLM_TIMEOUT", cls.llm_timeout),
            unsplash_access_key=_secret("UNSPLASH_ACCESS_KEY"),
            pixabay_api_key=_secret("PIXABAY_API_KEY"),
            pexels_api_key=_secret("PEXELS_API_KEY"),
            photo_timeout=_number("TRIP_PLANNER_PHOTO_TIMEOUT", cls.photo_timeout),
            ai_max_requests=int(_number("TRIP_PLANNER_AI_MAX_REQUESTS", cls.ai_max_requests)),
            ai_window_seconds=_number("TRIP_PLANNER_AI_WINDOW_SECONDS", cls.ai_window_seconds),
            photo_concurrency=max(1, int(_number("TRIP_PLANNER_PHOTO_CONCURRENCY", cls.photo_concurrency))),
            photo_pool_size=max(1, int(_number("TRIP_PLANNER_PHOTO_POOL_SIZE", cls.photo_pool_size))),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings.from_env()
    logger.info(
        "Settings loaded: llm=%s, unsplash=%s, pixabay=%s, pexels=%s",
        "configured" if settings.openai_api_key else "not configured",
        "configured" if settings.unsplash_access_key else "not configured",
        "configured" if settings.pixabay_api_key else "not configured",
        "configured" if settings.pexels_api_key else "not configured",
    )
    return settings


def _secret(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or None


def _number(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r; using default %s", name, raw, default)
        return default
