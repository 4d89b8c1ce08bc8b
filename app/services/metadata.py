"""Cache-aside memoisation of title metadata lookups."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from ..models import MetadataRecord
from ..store import Clock, TTLStore

logger = logging.getLogger(__name__)

DEFAULT_METADATA_TTL_SECONDS = 24 * 60 * 60
DEFAULT_LOOKUP_TIMEOUT_SECONDS = 5.0
FALLBACK_POSTER_URL = "https://images.metahub.space/poster/small/{imdb_id}/img"


@dataclass(slots=True)
class MetadataMatch:
    """Fields returned by a successful provider lookup."""

    display_name: str
    poster_url: str | None = None


class MetadataProvider(Protocol):
    """External source of display names and posters for IMDb ids."""

    async def lookup(self, imdb_id: str) -> MetadataMatch | None:
        """Return metadata for ``imdb_id`` or ``None`` when unknown."""


def fallback_poster_url(imdb_id: str) -> str:
    return FALLBACK_POSTER_URL.format(imdb_id=imdb_id)


class MetadataCache:
    """Resolve metadata through a provider, remembering only successes.

    Failed lookups return a synthesised record built from the raw id and are
    not cached, so a provider outage heals on the next request.
    """

    def __init__(
        self,
        provider: MetadataProvider | None,
        *,
        ttl_seconds: float = DEFAULT_METADATA_TTL_SECONDS,
        timeout_seconds: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        self._provider = provider
        self._timeout = timeout_seconds
        self._store: TTLStore[str, MetadataRecord] = TTLStore(ttl_seconds, clock=clock)

    @property
    def store(self) -> TTLStore[str, MetadataRecord]:
        return self._store

    async def resolve(self, imdb_id: str) -> MetadataRecord:
        cached = self._store.get(imdb_id)
        if cached is not None:
            return cached

        match = await self._fetch(imdb_id)
        if match is None:
            return MetadataRecord(
                display_name=imdb_id,
                poster_url=fallback_poster_url(imdb_id),
            )

        record = MetadataRecord(
            display_name=match.display_name or imdb_id,
            poster_url=match.poster_url or fallback_poster_url(imdb_id),
            cached_at=self._store.now(),
        )
        self._store.set(imdb_id, record)
        return record

    async def _fetch(self, imdb_id: str) -> MetadataMatch | None:
        if self._provider is None:
            return None
        try:
            return await asyncio.wait_for(
                self._provider.lookup(imdb_id), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Metadata lookup for %s timed out after %.1fs", imdb_id, self._timeout
            )
        except Exception:
            logger.exception("Metadata lookup failed for %s", imdb_id)
        return None
