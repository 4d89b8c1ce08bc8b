"""Short-lived record of what each client identity last browsed."""

from __future__ import annotations

import logging

from ..models import ContentDescriptor, ContentKey
from ..store import Clock, TTLStore

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TTL_SECONDS = 120


class ContentCorrelationStore:
    """Map client identities to the content they just looked up.

    Every stream lookup overwrites the previous descriptor for the identity,
    so a client tracks a single title at a time.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CONTENT_TTL_SECONDS,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._store: TTLStore[str, ContentDescriptor] = TTLStore(ttl_seconds, clock=clock)

    @property
    def store(self) -> TTLStore[str, ContentDescriptor]:
        return self._store

    def record(self, client_identity: str, media_type: str, content_id: str) -> ContentDescriptor:
        key = ContentKey.parse(content_id)
        descriptor = ContentDescriptor(
            imdb_id=key.imdb_id,
            media_type=media_type,
            season=key.season,
            episode=key.episode,
            observed_at=self._store.now(),
        )
        self._store.set(client_identity, descriptor)
        logger.debug("Recorded %s %s for %s", media_type, content_id, client_identity)
        return descriptor

    def lookup(self, client_identity: str) -> ContentDescriptor | None:
        return self._store.get(client_identity)

    def __len__(self) -> int:
        return len(self._store)
