import asyncio
import random
from typing import Dict, List, Optional

from trip_pipeline.schemas import Photo
from trip_pipeline.tools.photo_resolver import PhotoResolver, query_variants


def _photo(url: str, provider: str = "fake") -> Photo:
    return Photo(url=url, thumbnail_url=url, source_provider_id=provider)


class FakeProvider:
    def __init__(
        self,
        provider_id: str,
        results: Optional[Dict[str, List[str]]] = None,
        *,
        default: Optional[List[str]] = None,
        configured: bool = True,
        error: Optional[Exception] = None,
    ):
        self.provider_id = provider_id
        self.results = results or {}
        self.default = default or []
        self.configured = configured
        self.error = error
        self.call_count = 0
        self.last_error = None
        self.calls: List[tuple] = []

    async def search(self, query: str, count: int) -> List[Photo]:
        self.call_count += 1
        self.calls.append((query, count))
        if self.error is not None:
            raise self.error
        urls = self.results.get(query, self.default)
        return [_photo(url, self.provider_id) for url in urls][:count]


def test_query_variants_broaden_and_cap():
    assert query_variants("Paris skyline landmark", "Paris") == ["Paris skyline landmark", "Paris", "Paris travel"]
    assert query_variants("Louvre Museum") == ["Louvre Museum", "Louvre Museum travel", "Louvre Museum tourism"]
    assert query_variants("Paris", "paris") == ["Paris", "paris travel", "paris tourism"]
    assert query_variants("   ") == []


def test_resolve_fans_out_to_every_provider_and_variant():
    async def run() -> None:
        first = FakeProvider("unsplash", default=["https://a/1"])
        second = FakeProvider("pexels", default=["https://b/1"])
        resolver = PhotoResolver([first, second], rng=random.Random(0))

        photos = await resolver.resolve("Paris skyline", 5, subject="Paris")

        assert len(first.calls) == 3
        assert len(second.calls) == 3
        # 5 photos spread over 3 variants
        assert {count for _, count in first.calls} == {2}
        assert sorted(p.url for p in photos) == ["https://a/1", "https://b/1"]
        assert resolver.call_counts() == {"unsplash": 3, "pexels": 3}

    asyncio.run(run())


def test_resolve_deduplicates_by_url_and_caps_count():
    async def run() -> None:
        shared = ["https://x/1", "https://x/2", "https://x/3"]
        resolver = PhotoResolver(
            [FakeProvider("unsplash", default=shared), FakeProvider("pixabay", default=shared)],
            rng=random.Random(1),
        )

        photos = await resolver.resolve("Kyoto", 2)

        urls = [p.url for p in photos]
        assert len(urls) == 2
        assert len(set(urls)) == 2
        assert set(urls) <= set(shared)

    asyncio.run(run())


def test_resolve_without_configured_providers_is_empty():
    async def run() -> None:
        idle = FakeProvider("unsplash", default=["https://a/1"], configured=False)
        resolver = PhotoResolver([idle])

        assert resolver.configured is False
        assert await resolver.resolve("Paris", 3) == []
        assert idle.calls == []

    asyncio.run(run())


def test_resolve_zero_count_makes_no_calls():
    async def run() -> None:
        provider = FakeProvider("unsplash", default=["https://a/1"])
        resolver = PhotoResolver([provider])

        assert await resolver.resolve("Paris", 0) == []
        assert provider.calls == []

    asyncio.run(run())


def test_resolve_survives_a_provider_that_raises():
    async def run() -> None:
        broken = FakeProvider("pixabay", error=RuntimeError("boom"))
        healthy = FakeProvider("pexels", results={"Paris": ["https://p/1"]})
        resolver = PhotoResolver([broken, healthy], rng=random.Random(2))

        photos = await resolver.resolve("Paris", 1)

        assert [p.url for p in photos] == ["https://p/1"]
        assert photos[0].source_provider_id == "pexels"

    asyncio.run(run())
