"""Cache-aside behaviour of the metadata cache."""

from __future__ import annotations

import asyncio

import pytest

from app.services.metadata import MetadataCache, MetadataMatch, fallback_poster_url


class FakeProvider:
    def __init__(self, result: MetadataMatch | None = None, *, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[str] = []

    async def lookup(self, imdb_id: str) -> MetadataMatch | None:
        self.calls.append(imdb_id)
        if self.error is not None:
            raise self.error
        return self.result


class SlowProvider:
    async def lookup(self, imdb_id: str) -> MetadataMatch | None:
        await asyncio.sleep(5)
        return MetadataMatch(display_name="Too Late")


@pytest.mark.anyio("asyncio")
async def test_successful_lookup_is_cached(clock) -> None:
    provider = FakeProvider(
        MetadataMatch(display_name="The Shawshank Redemption", poster_url="https://img/p.jpg")
    )
    cache = MetadataCache(provider, clock=clock)

    first = await cache.resolve("tt0111161")
    second = await cache.resolve("tt0111161")

    assert first.display_name == "The Shawshank Redemption"
    assert first.poster_url == "https://img/p.jpg"
    assert first.cached_at == clock.now
    assert second is first
    assert provider.calls == ["tt0111161"]


@pytest.mark.anyio("asyncio")
async def test_stale_entry_triggers_refetch(clock) -> None:
    provider = FakeProvider(MetadataMatch(display_name="Title"))
    cache = MetadataCache(provider, ttl_seconds=60, clock=clock)

    await cache.resolve("tt0111161")
    clock.advance(61)
    await cache.resolve("tt0111161")

    assert provider.calls == ["tt0111161", "tt0111161"]


@pytest.mark.anyio("asyncio")
async def test_not_found_yields_uncached_fallback(clock) -> None:
    provider = FakeProvider(None)
    cache = MetadataCache(provider, clock=clock)

    record = await cache.resolve("tt7654321")

    assert record.display_name == "tt7654321"
    assert record.poster_url == fallback_poster_url("tt7654321")
    assert record.cached_at is None
    assert cache.store.get("tt7654321") is None

    provider.result = MetadataMatch(display_name="Recovered")
    healed = await cache.resolve("tt7654321")
    assert healed.display_name == "Recovered"
    assert provider.calls == ["tt7654321", "tt7654321"]


@pytest.mark.anyio("asyncio")
async def test_provider_error_is_absorbed(clock) -> None:
    cache = MetadataCache(FakeProvider(error=RuntimeError("boom")), clock=clock)

    record = await cache.resolve("tt0111161")

    assert record.display_name == "tt0111161"
    assert len(cache.store) == 0


@pytest.mark.anyio("asyncio")
async def test_provider_timeout_is_absorbed(clock) -> None:
    cache = MetadataCache(SlowProvider(), timeout_seconds=0.01, clock=clock)

    record = await cache.resolve("tt0111161")

    assert record.display_name == "tt0111161"
    assert len(cache.store) == 0


@pytest.mark.anyio("asyncio")
async def test_missing_poster_uses_fallback_pattern(clock) -> None:
    cache = MetadataCache(FakeProvider(MetadataMatch(display_name="No Art")), clock=clock)

    record = await cache.resolve("tt0000002")

    assert record.poster_url == "https://images.metahub.space/poster/small/tt0000002/img"


@pytest.mark.anyio("asyncio")
async def test_without_provider_every_lookup_falls_back(clock) -> None:
    cache = MetadataCache(None, clock=clock)

    record = await cache.resolve("tt0111161")

    assert record.display_name == "tt0111161"
