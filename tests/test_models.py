from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.models import ContentKey, ResumeReport, ResumeRecord


def test_episode_key_round_trip() -> None:
    key = ContentKey.build("tt0111161", "1", "3")

    assert key.to_key() == "tt0111161:1:3"
    assert ContentKey.parse("tt0111161:1:3") == key
    assert key.is_episode
    assert key.content_type == "series"


def test_movie_key_round_trip() -> None:
    key = ContentKey.build("tt0111161")

    assert str(key) == "tt0111161"
    parsed = ContentKey.parse("tt0111161")
    assert parsed == key
    assert parsed.season is None and parsed.episode is None
    assert parsed.content_type == "movie"


def test_partial_episode_falls_back_to_movie_key() -> None:
    assert ContentKey.build("tt0111161", "1", "").to_key() == "tt0111161"
    assert ContentKey.build("tt0111161", "", "").season is None


def test_watched_fraction_requires_duration() -> None:
    assert ResumeRecord(position_ms=50, duration_ms=100, saved_at=0).watched_fraction == 0.5
    assert ResumeRecord(position_ms=50, duration_ms=0, saved_at=0).watched_fraction is None


def test_resume_report_coerces_numeric_season_and_episode() -> None:
    report = ResumeReport.model_validate(
        {"imdb": "tt0903747", "season": 2, "episode": 5, "position": 1000, "duration": 4000}
    )

    assert report.season == "2"
    assert report.episode == "5"
    assert report.content_key.to_key() == "tt0903747:2:5"
    assert report.position == 1000


def test_resume_report_defaults_missing_numbers() -> None:
    report = ResumeReport.model_validate({"imdb": "tt0111161"})

    assert report.position == 0
    assert report.duration == 0


def test_resume_report_rejects_non_numeric_position() -> None:
    with pytest.raises(ValidationError):
        ResumeReport.model_validate({"imdb": "tt0111161", "position": "soon"})


def test_resume_report_without_imdb_has_no_key() -> None:
    report = ResumeReport.model_validate({"position": 1})
    assert report.imdb is None
    with pytest.raises(ValueError, match="imdb required"):
        report.content_key


@pytest.mark.parametrize(
    "payload",
    [
        {"imdb": "tt0111161", "position": float("nan"), "duration": 100},
        {"imdb": "tt0111161", "position": 1, "duration": float("inf")},
        {"imdb": "tt0111161", "position": 10**400, "duration": 1},
        {"imdb": "tt0111161", "season": float("inf"), "episode": 1},
    ],
)
def test_resume_report_rejects_non_finite_values(payload) -> None:
    with pytest.raises(ValidationError):
        ResumeReport.model_validate(payload)
