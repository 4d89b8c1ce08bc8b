"""Playback positions reported by the player, keyed by content."""

from __future__ import annotations

import logging
from typing import Iterator

from ..models import ContentKey, ResumeRecord
from ..store import Clock, TTLStore

logger = logging.getLogger(__name__)

DEFAULT_RESUME_TTL_SECONDS = 7 * 24 * 60 * 60
COMPLETION_THRESHOLD = 0.9
MIN_PROGRESS_FRACTION = 0.05


class ResumeStore:
    """Week-long store of resume points.

    Reports past :data:`COMPLETION_THRESHOLD` clear the entry because a
    finished title has nothing to resume.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_RESUME_TTL_SECONDS,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._store: TTLStore[str, ResumeRecord] = TTLStore(ttl_seconds, clock=clock)

    @property
    def store(self) -> TTLStore[str, ResumeRecord]:
        return self._store

    def report(self, key: ContentKey | str, position_ms: float, duration_ms: float) -> bool:
        """Store a position, or forget it once playback is complete.

        Returns ``True`` when a record was written.
        """

        storage_key = str(key)
        if duration_ms > 0 and position_ms / duration_ms > COMPLETION_THRESHOLD:
            self._store.delete(storage_key)
            logger.info(
                "Resume %s completed (%d%%), cleared",
                storage_key,
                _percent(position_ms / duration_ms),
            )
            return False

        self._store.set(
            storage_key,
            ResumeRecord(
                position_ms=position_ms,
                duration_ms=duration_ms,
                saved_at=self._store.now(),
            ),
        )
        logger.info("Resume %s saved pos=%s dur=%s", storage_key, position_ms, duration_ms)
        return True

    def lookup(self, key: ContentKey | str) -> ResumeRecord | None:
        return self._store.get(str(key))

    def list(self) -> Iterator[tuple[ContentKey, ResumeRecord]]:
        """Yield in-progress records suitable for a continue-watching row."""

        for raw_key, record in self._store.items():
            fraction = record.watched_fraction
            if fraction is None:
                continue
            if fraction < MIN_PROGRESS_FRACTION or fraction > COMPLETION_THRESHOLD:
                continue
            yield ContentKey.parse(raw_key), record

    def __len__(self) -> int:
        return len(self._store)


def _percent(fraction: float) -> int:
    return int(fraction * 100 + 0.5)
