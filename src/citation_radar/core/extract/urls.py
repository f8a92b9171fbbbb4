"""URL normalization, domain derivation and skip heuristics."""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlsplit, urlunsplit

DEFAULT_MAX_URL_LENGTH = 2048

# ── Skip heuristics ───────────────────────────────────────────────────────────

IMAGE_HOST_MARKERS: tuple[str, ...] = (
    "gstatic.com",
    "encrypted-tbn",
    "googleusercontent.com",
    "ggpht.com",
    "ytimg.com",
    "fbcdn.net",
    "twimg.com",
)

TRACKER_HOSTS: tuple[str, ...] = (
    "doubleclick.net",
    "google-analytics.com",
    "googletagmanager.com",
    "googleadservices.com",
    "googlesyndication.com",
)

TRACKER_PARAMS: frozenset[str] = frozenset({
    "gclid",
    "fbclid",
    "msclkid",
    "dclid",
    "mc_eid",
    "_hsenc",
    "_hsmi",
})

ACTIVITY_HOSTS: frozenset[str] = frozenset({
    "myactivity.google.com",
    "myaccount.google.com",
    "takeout.google.com",
})

IMAGE_EXTENSION_RE = re.compile(r"\.(?:png|jpe?g|gif|webp|svg|ico|bmp|avif)$", re.IGNORECASE)
ACTIVITY_PATH_RE = re.compile(r"/(?:my)?activity(?:/|$)|/history(?:/|$)", re.IGNORECASE)
_FALLBACK_DOMAIN_RE = re.compile(r"https?://(?:www\.)?([^/?#\s]+)", re.IGNORECASE)


def is_http_url(url: str) -> bool:
    return bool(re.match(r"^https?://", url, re.IGNORECASE))


def has_tracker_params(query: str) -> bool:
    """Return True if the query string carries a known analytics parameter."""
    for key, _ in parse_qsl(query, keep_blank_values=True):
        lowered = key.lower()
        if lowered.startswith("utm_") or lowered in TRACKER_PARAMS:
            return True
    return False


def is_skippable(url: str, max_length: int = DEFAULT_MAX_URL_LENGTH) -> bool:
    """Return True for URLs that are not citable sources.

    Rejects non-http(s) schemes, image/thumbnail/CDN hosts, image files,
    tracker hosts and tracker query parameters, account activity pages and
    anything over *max_length* characters.
    """
    if not url:
        return True
    url = url.strip()
    if len(url) > max_length or not is_http_url(url):
        return True

    try:
        parts = urlsplit(url)
    except ValueError:
        return True
    host = (parts.hostname or "").lower()
    if not host:
        return True

    if any(marker in host for marker in IMAGE_HOST_MARKERS):
        return True
    if IMAGE_EXTENSION_RE.search(parts.path):
        return True
    if any(host == t or host.endswith("." + t) for t in TRACKER_HOSTS):
        return True
    if has_tracker_params(parts.query):
        return True
    if host in ACTIVITY_HOSTS:
        return True
    if host.endswith("google.com") and ACTIVITY_PATH_RE.search(parts.path):
        return True
    return False


# ── Normalization ─────────────────────────────────────────────────────────────


def normalize_url(url: str) -> str:
    """Strip the fragment and trailing slash, lowercase scheme and host."""
    raw = (url or "").strip()
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw.rstrip("/")
    if not parts.scheme or not parts.netloc:
        return raw.rstrip("/")
    path = parts.path.rstrip("/")
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, parts.query, "")
    )


def extract_domain(url: str) -> str:
    """Return the lowercase host of *url* with any ``www.`` prefix removed."""
    try:
        host = urlsplit((url or "").strip()).hostname or ""
    except ValueError:
        host = ""
    if not host:
        match = _FALLBACK_DOMAIN_RE.match(url or "")
        host = match.group(1) if match else (url or "")
    host = host.lower()
    return host[4:] if host.startswith("www.") else host
