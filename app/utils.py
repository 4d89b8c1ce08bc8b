"""Utility helpers for the ModiKodi bridge."""

from __future__ import annotations

import base64
import binascii
from urllib.parse import urlparse


def b64url_encode(value: str) -> str:
    """Encode ``value`` as URL-safe base64 without padding."""

    encoded = base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii")
    return encoded.rstrip("=")


def b64url_decode(token: str) -> str | None:
    """Reverse :func:`b64url_encode`, returning ``None`` for garbage input."""

    token = (token or "").strip()
    if not token:
        return None
    padded = token + "=" * (-len(token) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return None


def hostname_of(url: str | None) -> str | None:
    if not url:
        return None
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.hostname:
        return None
    return parsed.hostname


def parse_version(version: str) -> dict[str, object]:
    """Split a dotted version into its numeric components."""

    parts = version.split(".")

    def _component(index: int) -> int:
        if index >= len(parts):
            return 0
        try:
            return int(parts[index])
        except ValueError:
            return 0

    return {
        "version": version,
        "major": _component(0),
        "minor": _component(1),
        "patch": _component(2),
    }
