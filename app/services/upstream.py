"""Proxy for wrapped stream add-ons that tags stream URLs with content ids."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..models import ContentKey
from ..utils import b64url_decode, hostname_of

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_TIMEOUT_SECONDS = 15.0

PARAM_IMDB = "_mk_imdb"
PARAM_TYPE = "_mk_type"
PARAM_SEASON = "_mk_s"
PARAM_EPISODE = "_mk_e"


def decode_upstream(token: str) -> str | None:
    """Return the normalised upstream base URL carried in a path token."""

    base_url = normalize_base_url(b64url_decode(token))
    if hostname_of(base_url) is None:
        return None
    return base_url


def normalize_base_url(value: str | None) -> str | None:
    if not value:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    normalized = normalized.rstrip("/")
    lowered = normalized.lower()
    for suffix in ("/manifest.json", "/manifest"):
        if lowered.endswith(suffix):
            normalized = normalized[: -len(suffix)].rstrip("/")
            break
    return normalized or None


def tag_stream_url(url: str, media_type: str, key: ContentKey) -> str:
    """Append the correlation query parameters to a playable URL."""

    separator = "&" if "?" in url else "?"
    tagged = (
        f"{url}{separator}{PARAM_IMDB}={quote(key.imdb_id, safe='')}"
        f"&{PARAM_TYPE}={media_type}"
    )
    if key.season:
        tagged += f"&{PARAM_SEASON}={key.season}"
    if key.episode:
        tagged += f"&{PARAM_EPISODE}={key.episode}"
    return tagged


def augment_streams(
    streams: list[Any], media_type: str, content_id: str
) -> list[Any]:
    """Tag every stream that has a direct URL; leave the rest untouched."""

    key = ContentKey.parse(content_id)
    augmented: list[Any] = []
    for stream in streams:
        if not isinstance(stream, dict) or not stream.get("url"):
            augmented.append(stream)
            continue
        augmented.append(
            {**stream, "url": tag_stream_url(str(stream["url"]), media_type, key)}
        )
    return augmented


class UpstreamAddonClient:
    """Fetch stream lists from a delegate add-on, degrading to no streams."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        timeout_seconds: float = DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
    ) -> None:
        self._client = http_client
        self._timeout_seconds = timeout_seconds
        self._timeout = httpx.Timeout(timeout_seconds)

    async def fetch_streams(
        self, base_url: str, media_type: str, content_id: str
    ) -> list[Any]:
        url = f"{base_url}/stream/{media_type}/{content_id}.json"
        try:
            # httpx bounds each phase separately; cap the whole exchange too.
            response = await asyncio.wait_for(
                self._client.get(url, timeout=self._timeout),
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
        except asyncio.TimeoutError:
            logger.warning(
                "Upstream %s timed out after %.1fs", url, self._timeout_seconds
            )
            return []
        except httpx.HTTPStatusError as exc:
            logger.warning("Upstream %s: %s", exc.response.status_code, url)
            return []
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Upstream request to %s failed: %s", url, exc)
            return []

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Upstream %s returned invalid JSON", url)
            return []
        if not isinstance(payload, dict):
            return []
        streams = payload.get("streams") or []
        if not isinstance(streams, list):
            return []
        return streams

    async def wrapped_streams(
        self, upstream_token: str, media_type: str, content_id: str
    ) -> list[Any]:
        base_url = decode_upstream(upstream_token)
        if base_url is None:
            logger.warning("Could not decode upstream token %r", upstream_token)
            return []
        streams = await self.fetch_streams(base_url, media_type, content_id)
        return augment_streams(streams, media_type, content_id)
