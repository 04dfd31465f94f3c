import asyncio
from typing import Any, Dict, List

import httpx

from trip_pipeline.tools.photo_providers import (
    PexelsProvider,
    PixabayProvider,
    UnsplashProvider,
    build_photo_providers,
)
from trip_pipeline.tools.rate_limiter import RateLimiter


class DummyResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("GET", "https://example.test")
            raise httpx.HTTPStatusError(
                f"HTTP {self.status_code}",
                request=request,
                response=httpx.Response(self.status_code, request=request),
            )
        return None

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class DummyAsyncClient:
    def __init__(self, response: Any, requests: List[Dict[str, Any]], *args, **kwargs):
        self.response = response
        self.requests = requests
        self.kwargs = kwargs

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def get(self, url, params=None, headers=None):
        self.requests.append({"url": url, "params": params, "headers": headers, "timeout": self.kwargs.get("timeout")})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _patch_client(monkeypatch, response) -> List[Dict[str, Any]]:
    requests: List[Dict[str, Any]] = []
    monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: DummyAsyncClient(response, requests, *a, **kw))
    return requests


UNSPLASH_PAYLOAD = {
    "results": [
        {
            "id": "abc",
            "urls": {"regular": "https://images.unsplash.com/abc", "small": "https://images.unsplash.com/abc-small"},
            "alt_description": "Eiffel Tower at dusk",
            "user": {"name": "Jane Doe", "links": {"html": "https://unsplash.com/@jane"}},
        },
        {"id": "no-url", "urls": {}},
    ]
}

PIXABAY_PAYLOAD = {
    "hits": [
        {
            "id": 42,
            "webformatURL": "https://pixabay.com/get/42.jpg",
            "previewURL": "https://cdn.pixabay.com/42_150.jpg",
            "tags": "paris, tower",
            "user": "pixuser",
            "user_id": 7,
        }
    ]
}

PEXELS_PAYLOAD = {
    "photos": [
        {
            "id": 9,
            "src": {"large": "https://images.pexels.com/9-large.jpg", "medium": "https://images.pexels.com/9-medium.jpg"},
            "alt": "Seine river",
            "photographer": "Pat",
            "photographer_url": "https://www.pexels.com/@pat",
        }
    ]
}


def test_unsplash_normalizes_results_and_sends_client_id(monkeypatch):
    async def run() -> None:
        requests = _patch_client(monkeypatch, DummyResponse(UNSPLASH_PAYLOAD))
        provider = UnsplashProvider("key-123", timeout=2.0)

        photos = await provider.search("Paris skyline", 3)

        assert len(photos) == 1
        photo = photos[0]
        assert photo.url == "https://images.unsplash.com/abc"
        assert photo.thumbnail_url == "https://images.unsplash.com/abc-small"
        assert photo.alt_text == "Eiffel Tower at dusk"
        assert photo.photographer_name == "Jane Doe"
        assert photo.photographer_profile_url == "https://unsplash.com/@jane"
        assert photo.source_provider_id == "unsplash"
        assert photo.provider_photo_id == "abc"

        sent = requests[0]
        assert sent["headers"]["Authorization"] == "Client-ID key-123"
        assert sent["params"]["query"] == "Paris skyline"
        assert sent["params"]["per_page"] == 3
        assert sent["timeout"] == 2.0
        assert provider.call_count == 1

    asyncio.run(run())


def test_pixabay_normalizes_hits_and_clamps_page_size(monkeypatch):
    async def run() -> None:
        requests = _patch_client(monkeypatch, DummyResponse(PIXABAY_PAYLOAD))
        provider = PixabayProvider("pix-key")

        photos = await provider.search("Paris", 1)

        assert [p.url for p in photos] == ["https://pixabay.com/get/42.jpg"]
        assert photos[0].alt_text == "paris, tower"
        assert photos[0].photographer_profile_url == "https://pixabay.com/users/pixuser-7/"
        assert requests[0]["params"]["key"] == "pix-key"
        assert requests[0]["params"]["per_page"] == 3

    asyncio.run(run())


def test_pexels_normalizes_photos_and_sends_raw_key(monkeypatch):
    async def run() -> None:
        requests = _patch_client(monkeypatch, DummyResponse(PEXELS_PAYLOAD))
        provider = PexelsProvider("pexels-key")

        photos = await provider.search("Seine", 2)

        assert photos[0].url == "https://images.pexels.com/9-large.jpg"
        assert photos[0].thumbnail_url == "https://images.pexels.com/9-medium.jpg"
        assert photos[0].photographer_name == "Pat"
        assert photos[0].source_provider_id == "pexels"
        assert requests[0]["headers"]["Authorization"] == "pexels-key"

    asyncio.run(run())


def test_provider_without_credentials_never_calls_network(monkeypatch):
    async def run() -> None:
        requests = _patch_client(monkeypatch, DummyResponse(UNSPLASH_PAYLOAD))
        provider = UnsplashProvider(None)

        assert provider.configured is False
        assert await provider.search("Paris", 2) == []
        assert requests == []

    asyncio.run(run())


def test_provider_fails_soft_on_http_error_timeout_and_bad_payload(monkeypatch):
    async def run() -> None:
        failures = [
            DummyResponse({}, status_code=403),
            httpx.ReadTimeout("timed out"),
            DummyResponse(ValueError("not json")),
            DummyResponse({"results": "nope"}),
            DummyResponse({"results": [{"urls": "not-a-dict"}]}),
        ]
        for failure in failures:
            _patch_client(monkeypatch, failure)
            provider = UnsplashProvider("key")
            assert await provider.search("Paris", 2) == []
            assert provider.last_error and provider.last_error.startswith("unsplash:")

    asyncio.run(run())


def test_provider_budget_short_circuits_without_network(monkeypatch):
    async def run() -> None:
        requests = _patch_client(monkeypatch, DummyResponse(PEXELS_PAYLOAD))
        provider = PexelsProvider("key", budget=RateLimiter(2, 3600))

        assert len(await provider.search("Paris", 1)) == 1
        assert len(await provider.search("Paris", 1)) == 1
        assert await provider.search("Paris", 1) == []
        assert len(requests) == 2
        assert provider.call_count == 2

    asyncio.run(run())


def test_build_photo_providers_keeps_preference_order():
    providers = build_photo_providers(unsplash_key="u", pixabay_key=None, pexels_key="p")

    assert [p.provider_id for p in providers] == ["unsplash", "pixabay", "pexels"]
    assert [p.configured for p in providers] == [True, False, True]
