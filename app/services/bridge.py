"""Process-wide bridge state and the protocol operations built on it."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any

from ..config import Settings
from ..models import ContentKey, ResumeReport
from ..store import Clock, TTLStore
from .metadata import MetadataCache, MetadataProvider
from .resume import ResumeStore
from .tracking import ContentCorrelationStore
from .upstream import UpstreamAddonClient

logger = logging.getLogger(__name__)

CONTINUE_CATALOG_ID = "modikodi-continue"


class BridgeService:
    """Own the three stores and serve the identify, resume and catalog flows.

    One instance lives for the whole process. Request handlers reach it through
    ``app.state`` and never touch the stores directly.
    """

    def __init__(
        self,
        settings: Settings,
        upstream: UpstreamAddonClient | None = None,
        metadata_provider: MetadataProvider | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._settings = settings
        self._upstream = upstream
        self.content = ContentCorrelationStore(settings.content_ttl_seconds, clock=clock)
        self.resume = ResumeStore(settings.resume_ttl_seconds, clock=clock)
        self.metadata = MetadataCache(
            metadata_provider,
            ttl_seconds=settings.metadata_ttl_seconds,
            timeout_seconds=settings.metadata_timeout_seconds,
            clock=clock,
        )
        self._sweep_interval = settings.sweep_interval_seconds
        self._sweep_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Launch the periodic expiry sweep."""

        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Stop the background sweep."""

        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._sweep_task
        self._sweep_task = None

    def sweep(self) -> int:
        """Drop expired entries from every store."""

        stores: tuple[TTLStore[Any, Any], ...] = (
            self.content.store,
            self.resume.store,
            self.metadata.store,
        )
        removed = sum(store.sweep() for store in stores)
        if removed:
            logger.debug("Swept %d expired entries", removed)
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception as exc:  # pragma: no cover - background safety net
                logger.exception("Store sweep failed: %s", exc)

    def record_stream(self, client_identity: str, media_type: str, content_id: str) -> None:
        self.content.record(client_identity, media_type, content_id)

    async def wrapped_streams(
        self,
        client_identity: str,
        upstream_token: str,
        media_type: str,
        content_id: str,
    ) -> list[Any]:
        """Record the lookup, then proxy and tag the upstream add-on's streams."""

        self.record_stream(client_identity, media_type, content_id)
        if self._upstream is None:
            return []
        return await self._upstream.wrapped_streams(upstream_token, media_type, content_id)

    def identify(self, client_identity: str) -> dict[str, Any]:
        descriptor = self.content.lookup(client_identity)
        if descriptor is None:
            logger.info(
                "Identify %s -> not found (store size: %d)",
                client_identity,
                len(self.content),
            )
            return {"found": False}

        result: dict[str, Any] = {
            "found": True,
            "imdb": descriptor.imdb_id,
            "type": descriptor.media_type,
            "season": descriptor.season or "",
            "episode": descriptor.episode or "",
        }
        logger.info(
            "Identify %s -> %s %s S%sE%s",
            client_identity,
            descriptor.imdb_id,
            descriptor.media_type,
            result["season"],
            result["episode"],
        )
        record = self.resume.lookup(descriptor.content_key)
        if record is not None:
            result["resume"] = {
                "position": record.position_ms,
                "duration": record.duration_ms,
            }
        return result

    def report_resume(self, report: ResumeReport) -> bool:
        return self.resume.report(report.content_key, report.position, report.duration)

    async def continue_watching(self, content_type: str) -> list[dict[str, Any]]:
        """Build catalog metas for titles the player left part-way through."""

        entries: list[tuple[ContentKey, float]] = []
        for key, record in self.resume.list():
            if key.content_type != content_type:
                continue
            fraction = record.watched_fraction
            if fraction is None:
                continue
            entries.append((key, fraction))

        records = await asyncio.gather(
            *(self.metadata.resolve(key.imdb_id) for key, _ in entries)
        )

        metas: list[dict[str, Any]] = []
        for (key, fraction), metadata in zip(entries, records):
            name = metadata.display_name
            if key.is_episode:
                name = f"{name} S{key.season}E{key.episode}"
            metas.append(
                {
                    "id": key.imdb_id,
                    "type": key.content_type,
                    "name": name,
                    "poster": metadata.poster_url,
                    "description": f"{int(fraction * 100 + 0.5)}% watched",
                }
            )
        logger.info(
            "Catalog %s/%s -> %d items", content_type, CONTINUE_CATALOG_ID, len(metas)
        )
        return metas
