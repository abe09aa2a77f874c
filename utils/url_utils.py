"""
URL helpers for matching tabs against pinned slots and saved sessions.
"""
from __future__ import annotations

import re
from urllib.parse import parse_qsl, quote, urlsplit

TRACKING_QUERY_PREFIXES = ("utm_",)
TRACKING_QUERY_KEYS = {"fbclid", "gclid", "mc_cid", "mc_eid"}

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _fallback(trimmed: str) -> str:
    return trimmed.lower().rstrip("/")


def normalize_url_for_match(raw_url: str) -> str:
    """
    Normalize a URL so two spellings of the same page compare equal.

    Lower-cases scheme and host, drops ``www.`` and default ports, collapses
    duplicate slashes, strips a trailing slash, removes tracking parameters,
    sorts the query and discards the fragment. Returns ``""`` for empty input.
    """
    trimmed = (raw_url or "").strip()
    if not trimmed:
        return ""

    try:
        parsed = urlsplit(trimmed)
        port = parsed.port
    except ValueError:
        return _fallback(trimmed)

    if not parsed.scheme or not parsed.netloc:
        return _fallback(trimmed)

    scheme = parsed.scheme.lower()
    hostname = (parsed.hostname or "").lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]

    port_part = ""
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        port_part = f":{port}"

    path = re.sub(r"/{2,}", "/", parsed.path or "/")
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]

    kept = []
    for key, value in parse_qsl(parsed.query, keep_blank_values=True):
        lower_key = key.lower()
        if lower_key in TRACKING_QUERY_KEYS:
            continue
        if lower_key.startswith(TRACKING_QUERY_PREFIXES):
            continue
        kept.append((key, value))
    kept.sort()

    search = ""
    if kept:
        search = "?" + "&".join(f"{quote(k, safe='')}={quote(v, safe='')}" for k, v in kept)

    return f"{scheme}://{hostname}{port_part}{path}{search}"


def urls_match(left: str, right: str) -> bool:
    """True when both URLs normalize to the same non-empty value."""
    normalized = normalize_url_for_match(left)
    return bool(normalized) and normalized == normalize_url_for_match(right)
