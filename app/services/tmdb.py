"""Metadata provider backed by The Movie Database (TMDB)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .metadata import MetadataMatch, fallback_poster_url

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w342"


class TMDBMetadataProvider:
    """Resolve IMDb ids to titles and posters through TMDB's find endpoint."""

    def __init__(self, http_client: httpx.AsyncClient, api_key: str | None):
        if not api_key:
            raise ValueError("TMDB API key is required when initialising TMDBMetadataProvider")
        self._client = http_client
        self._api_key = api_key

    async def lookup(self, imdb_id: str) -> MetadataMatch | None:
        params = {"api_key": self._api_key, "external_source": "imdb_id"}
        try:
            response = await self._client.get(f"/find/{imdb_id}", params=params)
        except httpx.HTTPError as exc:
            logger.warning("TMDB find for %s failed: %s", imdb_id, exc)
            return None
        if response.status_code >= 400:
            logger.warning(
                "TMDB find for %s returned %s", imdb_id, response.status_code
            )
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("TMDB find for %s returned invalid JSON", imdb_id)
            return None
        if not isinstance(payload, dict):
            return None

        item = self._first_result(payload.get("movie_results")) or self._first_result(
            payload.get("tv_results")
        )
        if item is None:
            return None

        name = item.get("title") or item.get("name") or imdb_id
        return MetadataMatch(
            display_name=str(name),
            poster_url=self._build_poster_url(item.get("poster_path"), imdb_id),
        )

    @staticmethod
    def _first_result(results: Any) -> dict[str, Any] | None:
        if not isinstance(results, list) or not results:
            return None
        first = results[0]
        return first if isinstance(first, dict) else None

    @staticmethod
    def _build_poster_url(path: Any, imdb_id: str) -> str:
        if not isinstance(path, str) or not path:
            return fallback_poster_url(imdb_id)
        if path.startswith("http"):
            return path
        return f"{POSTER_BASE_URL}{path}"
