"""In-memory key/value store with per-entry time-to-live."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Iterator, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


@dataclass(slots=True)
class TTLEntry(Generic[V]):
    """A stored value together with the time it was last written."""

    value: V
    inserted_at: float


class TTLStore(Generic[K, V]):
    """Mapping whose entries expire ``ttl_seconds`` after their last write.

    Reads check expiry lazily, so a stale entry is reported as missing even
    when it is still held in memory. ``sweep`` physically drops stale entries
    and is meant to be called periodically by a background task.
    """

    def __init__(self, ttl_seconds: float, *, clock: Clock | None = None) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = float(ttl_seconds)
        self._clock: Clock = clock or time.monotonic
        self._entries: dict[K, TTLEntry[V]] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def now(self) -> float:
        return self._clock()

    def set(self, key: K, value: V) -> None:
        self._entries[key] = TTLEntry(value=value, inserted_at=self._clock())

    def get(self, key: K) -> V | None:
        entry = self._entries.get(key)
        if entry is None or self._is_expired(entry, self._clock()):
            return None
        return entry.value

    def entry(self, key: K) -> TTLEntry[V] | None:
        """Return the live entry for ``key`` including its write timestamp."""

        entry = self._entries.get(key)
        if entry is None or self._is_expired(entry, self._clock()):
            return None
        return entry

    def delete(self, key: K) -> bool:
        return self._entries.pop(key, None) is not None

    def items(self) -> Iterator[tuple[K, V]]:
        """Yield live ``(key, value)`` pairs in insertion order."""

        now = self._clock()
        for key, entry in list(self._entries.items()):
            if not self._is_expired(entry, now):
                yield key, entry.value

    def sweep(self, now: float | None = None) -> int:
        """Remove every expired entry and return how many were dropped."""

        current = self._clock() if now is None else now
        expired = [
            key for key, entry in self._entries.items() if self._is_expired(entry, current)
        ]
        for key in expired:
            self._entries.pop(key, None)
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def _is_expired(self, entry: TTLEntry[V], now: float) -> bool:
        return now - entry.inserted_at > self._ttl
