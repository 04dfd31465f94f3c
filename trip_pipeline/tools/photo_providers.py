from typing import Any, Dict, List, Optional
import logging
import os

import httpx

from trip_pipeline.errors import ProviderCallFailed
from trip_pipeline.schemas import Photo
from trip_pipeline.tools.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_PLANNER_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

HOUR = 3600.0


class PhotoProvider:
    """
    Image-search capability: ``search(query, count)`` returns normalized photos.

    Subclasses supply the endpoint, auth scheme and response mapping. ``search``
    never raises: missing credentials, an exhausted hourly budget, HTTP errors,
    timeouts and malformed payloads all produce an empty list.
    """
    provider_id = "base"
    SEARCH_ENDPOINT = ""
    HOURLY_BUDGET = 0

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        timeout: float = 5.0,
        budget: Optional[RateLimiter] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.budget = budget or RateLimiter(self.HOURLY_BUDGET, HOUR)
        self.call_count = 0
        self.last_error: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, count: int) -> List[Photo]:
        query = (query or "").strip()
        if not self.configured or not query or count <= 0:
            return []
        if not self.budget.is_allowed(self.provider_id):
            logger.warning("%s hourly budget exhausted; skipping '%s'", self.provider_id, query)
            return []

        self.call_count += 1
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.SEARCH_ENDPOINT,
                    params=self._params(query, count),
                    headers=self._headers(),
                )
                response.raise_for_status()
                data = response.json()
            photos = self._normalize(data, query)
        except (httpx.HTTPError, ValueError, TypeError, AttributeError, ProviderCallFailed) as exc:
            self.last_error = f"{self.provider_id}: {exc}"
            logger.warning("%s search failed for '%s'", self.provider_id, query, exc_info=True)
            return []

        logger.debug("%s returned %d photo(s) for '%s'", self.provider_id, len(photos), query)
        return photos[:count]

    def _params(self, query: str, count: int) -> Dict[str, Any]:
        raise NotImplementedError

    def _headers(self) -> Dict[str, str]:
        return {}

    def _normalize(self, data: Any, query: str) -> List[Photo]:
        raise NotImplementedError

    def _items(self, data: Any, key: str) -> List[Dict[str, Any]]:
        if not isinstance(data, dict) or not isinstance(data.get(key), list):
            raise ProviderCallFailed(f"response has no '{key}' list")
        return [item for item in data[key] if isinstance(item, dict)]


class UnsplashProvider(PhotoProvider):
    provider_id = "unsplash"
    SEARCH_ENDPOINT = "https://api.unsplash.com/search/photos"
    # Demo apps get 50 requests/hour.
    HOURLY_BUDGET = 45

    def _params(self, query: str, count: int) -> Dict[str, Any]:
        return {"query": query, "per_page": min(count, 30), "orientation": "landscape"}

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Client-ID {self.api_key}", "Accept-Version": "v1"}

    def _normalize(self, data: Any, query: str) -> List[Photo]:
        photos: List[Photo] = []
        for item in self._items(data, "results"):
            urls = item.get("urls") or {}
            url = urls.get("regular")
            if not url:
                continue
            user = item.get("user") or {}
            photos.append(
                Photo(
                    url=url,
                    thumbnail_url=urls.get("small") or url,
                    alt_text=item.get("alt_description") or item.get("description") or query,
                    photographer_name=user.get("name") or "",
                    photographer_profile_url=(user.get("links") or {}).get("html"),
                    source_provider_id=self.provider_id,
                    provider_photo_id=str(item.get("id") or ""),
                )
            )
        return photos


class PixabayProvider(PhotoProvider):
    provider_id = "pixabay"
    SEARCH_ENDPOINT = "https://pixabay.com/api/"
    # 100 requests per 60 seconds.
    HOURLY_BUDGET = 4500

    def _params(self, query: str, count: int) -> Dict[str, Any]:
        return {
            "key": self.api_key,
            "q": query[:100],
            "image_type": "photo",
            "category": "travel",
            "min_width": 640,
            "safesearch": "true",
            # Pixabay rejects per_page outside 3..200
            "per_page": max(3, min(count, 200)),
        }

    def _normalize(self, data: Any, query: str) -> List[Photo]:
        photos: List[Photo] = []
        for item in self._items(data, "hits"):
            url = item.get("webformatURL")
            if not url:
                continue
            user = item.get("user") or ""
            user_id = item.get("user_id")
            profile = f"https://pixabay.com/users/{user}-{user_id}/" if user and user_id else None
            photos.append(
                Photo(
                    url=url,
                    thumbnail_url=item.get("previewURL") or url,
                    alt_text=item.get("tags") or query,
                    photographer_name=user,
                    photographer_profile_url=profile,
                    source_provider_id=self.provider_id,
                    provider_photo_id=str(item.get("id") or ""),
                )
            )
        return photos


class PexelsProvider(PhotoProvider):
    provider_id = "pexels"
    SEARCH_ENDPOINT = "https://api.pexels.com/v1/search"
    # 200 requests/hour on the free plan.
    HOURLY_BUDGET = 180

    def _params(self, query: str, count: int) -> Dict[str, Any]:
        return {"query": query, "per_page": min(count, 80), "orientation": "landscape"}

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": self.api_key or ""}

    def _normalize(self, data: Any, query: str) -> List[Photo]:
        photos: List[Photo] = []
        for item in self._items(data, "photos"):
            src = item.get("src") or {}
            url = src.get("large")
            if not url:
                continue
            photos.append(
                Photo(
                    url=url,
                    thumbnail_url=src.get("medium") or url,
                    alt_text=item.get("alt") or query,
                    photographer_name=item.get("photographer") or "",
                    photographer_profile_url=item.get("photographer_url"),
                    source_provider_id=self.provider_id,
                    provider_photo_id=str(item.get("id") or ""),
                )
            )
        return photos


def build_photo_providers(
    *,
    unsplash_key: Optional[str] = None,
    pixabay_key: Optional[str] = None,
    pexels_key: Optional[str] = None,
    timeout: float = 5.0,
) -> List[PhotoProvider]:
    """Return all providers in preference order (Unsplash first).

    Providers without credentials are kept so status reports can list them;
    ``PhotoResolver`` skips them.
    """
    candidates: List[PhotoProvider] = [
        UnsplashProvider(unsplash_key, timeout=timeout),
        PixabayProvider(pixabay_key, timeout=timeout),
        PexelsProvider(pexels_key, timeout=timeout),
    ]
    skipped = [provider.provider_id for provider in candidates if not provider.configured]
    if skipped:
        logger.info("Photo providers without credentials (skipped): %s", ", ".join(skipped))
    return candidates
