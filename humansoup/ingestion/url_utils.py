"""URL normalization and hashing helpers for ingestion/dedup."""

from __future__ import annotations

import hashlib
import re
from typing import Optional
from urllib.parse import urlparse


# Hosts where a publisher does not own the domain it publishes on.
PLATFORM_HOSTS = {
    "me3.app",
    "youtube.com",
    "substack.com",
    "medium.com",
    "megaphone.fm",
    "simplecast.com",
    "fireside.fm",
    "spreaker.com",
    "flightcast.com",
}

_IMAGE_EXT_RE = re.compile(r"\.(avif|gif|jpe?g|png|svg|webp)$", re.IGNORECASE)
_IMAGE_EXT_LOOSE_RE = re.compile(r"\.(avif|gif|jpe?g|png|svg|webp)(\?.*)?$", re.IGNORECASE)
_SLUG_RE = re.compile(r"[^a-z0-9]+")


def normalize_site_url(url: str) -> str:
    """Normalize a site URL: add https:// when the scheme is missing, drop trailing slashes."""
    normalized = (url or "").strip()
    if not normalized.startswith("http"):
        normalized = f"https://{normalized}"
    return normalized.rstrip("/")


def build_content_url(site_url: str, slug: str) -> str:
    return f"{normalize_site_url(site_url)}/blog/{slug}"


def host_from_url(url: str) -> Optional[str]:
    try:
        host = (urlparse(url or "").hostname or "").lower().strip()
    except ValueError:
        return None
    if host.startswith("www."):
        host = host[4:]
    return host or None


def is_platform_host(host: Optional[str]) -> bool:
    if not host:
        return False
    return any(host == p or host.endswith("." + p) for p in PLATFORM_HOSTS)


def is_likely_image_url(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        p = urlparse(value)
    except ValueError:
        return bool(_IMAGE_EXT_LOOSE_RE.search(value))
    if p.scheme and p.netloc:
        return bool(_IMAGE_EXT_RE.search(p.path or ""))
    return bool(_IMAGE_EXT_LOOSE_RE.search(value))


def is_video_feed_url(value: str) -> bool:
    """True for recognized video-platform feed URLs (YouTube channel/playlist feeds)."""
    try:
        p = urlparse(value or "")
    except ValueError:
        return "youtube.com/feeds/videos.xml" in (value or "")
    host = (p.hostname or "").lower()
    return host in ("youtube.com", "www.youtube.com") and p.path == "/feeds/videos.xml"


def stable_hash(text: str) -> str:
    """Stable sha256 fingerprint of a document."""
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def key_hash(value: str) -> str:
    """Hash of a lowercased, trimmed key (feed URLs, slug seeds, consumer keys)."""
    return stable_hash((value or "").strip().lower())


def slugify(value: str, *, max_len: int = 48) -> str:
    return _SLUG_RE.sub("-", (value or "").lower()).strip("-")[:max_len].strip("-")
