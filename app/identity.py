"""Derive the implicit client identity used to correlate requests."""

from __future__ import annotations

import ipaddress
from typing import Mapping

from fastapi import Request

LOOPBACK_IDENTITY = "localhost"
UNKNOWN_IDENTITY = "unknown"

# Header set by Cloudflare tunnels with the real client address.
CONNECTING_IP_HEADER = "cf-connecting-ip"
FORWARDED_FOR_HEADER = "x-forwarded-for"


def resolve_client_identity(headers: Mapping[str, str], peer_host: str | None) -> str:
    """Return the correlation key for a request.

    The trusted tunnel header wins, then the first ``X-Forwarded-For`` hop,
    then the transport peer address. This is not an authentication boundary:
    any client can spoof the headers.
    """

    candidate = _clean(headers.get(CONNECTING_IP_HEADER))
    if not candidate:
        candidate = _first_forwarded_value(headers.get(FORWARDED_FOR_HEADER))
    if not candidate:
        candidate = _clean(peer_host)
    if not candidate:
        return UNKNOWN_IDENTITY
    return normalize_loopback(candidate)


def client_identity(request: Request) -> str:
    peer_host = request.client.host if request.client else None
    return resolve_client_identity(request.headers, peer_host)


def normalize_loopback(address: str) -> str:
    """Collapse every loopback spelling onto :data:`LOOPBACK_IDENTITY`."""

    if address.lower() == LOOPBACK_IDENTITY:
        return LOOPBACK_IDENTITY
    try:
        parsed = ipaddress.ip_address(address)
    except ValueError:
        return address
    if isinstance(parsed, ipaddress.IPv6Address) and parsed.ipv4_mapped is not None:
        parsed = parsed.ipv4_mapped
    if parsed.is_loopback:
        return LOOPBACK_IDENTITY
    return address


def _first_forwarded_value(header_value: str | None) -> str | None:
    if not header_value:
        return None
    return _clean(header_value.split(",", 1)[0])


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None
