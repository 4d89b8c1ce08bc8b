"""Records held by the bridge stores and the payloads exchanged with clients."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ContentType = Literal["movie", "series"]

CONTENT_KEY_SEPARATOR = ":"


@dataclass(frozen=True, slots=True)
class ContentKey:
    """Identifies a movie (``tt123``) or a single episode (``tt123:1:3``)."""

    imdb_id: str
    season: str | None = None
    episode: str | None = None

    @classmethod
    def parse(cls, raw: str) -> "ContentKey":
        """Split a Stremio content id into its imdb/season/episode parts."""

        parts = raw.split(CONTENT_KEY_SEPARATOR)
        season = parts[1] if len(parts) > 1 and parts[1] else None
        episode = parts[2] if len(parts) > 2 and parts[2] else None
        return cls(imdb_id=parts[0], season=season, episode=episode)

    @classmethod
    def build(
        cls, imdb_id: str, season: str | None = None, episode: str | None = None
    ) -> "ContentKey":
        return cls(imdb_id=imdb_id, season=season or None, episode=episode or None)

    @property
    def is_episode(self) -> bool:
        return bool(self.season and self.episode)

    @property
    def content_type(self) -> ContentType:
        return "series" if self.is_episode else "movie"

    def to_key(self) -> str:
        # Only a complete season/episode pair makes an episode key.
        if self.is_episode:
            return CONTENT_KEY_SEPARATOR.join((self.imdb_id, self.season, self.episode))  # type: ignore[arg-type]
        return self.imdb_id

    def __str__(self) -> str:
        return self.to_key()


@dataclass(slots=True)
class ContentDescriptor:
    """What a client identity was last seen browsing."""

    imdb_id: str
    media_type: str
    season: str | None
    episode: str | None
    observed_at: float

    @property
    def content_key(self) -> ContentKey:
        return ContentKey.build(self.imdb_id, self.season, self.episode)


@dataclass(slots=True)
class ResumeRecord:
    """Last playback position reported by the player."""

    position_ms: float
    duration_ms: float
    saved_at: float

    @property
    def watched_fraction(self) -> float | None:
        if not self.duration_ms or self.duration_ms <= 0:
            return None
        return self.position_ms / self.duration_ms


@dataclass(slots=True)
class MetadataRecord:
    """Display data used to render catalog entries."""

    display_name: str
    poster_url: str
    cached_at: float | None = None


class ResumeReport(BaseModel):
    """Body of ``POST /resume`` as sent by the player."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    imdb: str | None = None
    season: str | None = None
    episode: str | None = None
    position: int | float = Field(default=0)
    duration: int | float = Field(default=0)

    @field_validator("imdb", "season", "episode", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> object:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("must be a finite number")
        if isinstance(value, (int, float)):
            return str(int(value))
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("position", "duration", mode="before")
    @classmethod
    def _default_missing_numbers(cls, value: object) -> object:
        if value is None:
            return 0
        return value

    @field_validator("position", "duration")
    @classmethod
    def _require_finite(cls, value: int | float) -> int | float:
        # Oversized JSON integers overflow once divided as floats.
        try:
            finite = math.isfinite(float(value))
        except OverflowError:
            finite = False
        if not finite:
            raise ValueError("must be a finite number")
        return value

    @property
    def content_key(self) -> ContentKey:
        if not self.imdb:
            raise ValueError("imdb required")
        return ContentKey.build(self.imdb, self.season, self.episode)
