"""RSS/Atom normalization into one canonical item shape.

The document shape is resolved once at the top level (`rss` or `atom`, from
feedparser's detected version). Per-item fields are then resolved through
ordered fallback chains: each chain is a tuple of small resolver functions
and the first non-empty answer wins. Every optional field may be absent.

Pure transform: no storage access, no network access.
"""

from __future__ import annotations

import io
import re
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Sequence, Union

import feedparser

from humansoup.contracts.profile_document import parse_datetime
from humansoup.errors import UnsupportedFormatError
from humansoup.ingestion.content_types import ParsedFeed, ParsedFeedItem
from humansoup.ingestion.url_utils import is_likely_image_url

Resolver = Callable[[Any], Optional[Any]]

_DIGITS_RE = re.compile(r"^\d+$")


def parse_feed(xml: Union[str, bytes]) -> ParsedFeed:
    """Parse an RSS 2.0 / RSS 1.0 / Atom document.

    Raises UnsupportedFormatError when the document is neither.
    """
    data = xml.encode("utf-8") if isinstance(xml, str) else (xml or b"")
    parsed = feedparser.parse(io.BytesIO(data))
    version = str(parsed.get("version") or "")
    if version.startswith("rss"):
        kind = "rss"
    elif version.startswith("atom"):
        kind = "atom"
    else:
        reason = parsed.get("bozo_exception")
        raise UnsupportedFormatError(f"Unsupported feed format{f': {reason}' if reason else ''}")

    feed = parsed.get("feed") or {}
    normalize = _normalize_rss_item if kind == "rss" else _normalize_atom_entry
    return ParsedFeed(
        title=_text(feed.get("title")) or "Untitled Feed",
        kind=kind,
        link=_text(feed.get("link")),
        image=_resolve(FEED_IMAGE_CHAIN, feed),
        items=[normalize(e) for e in (parsed.get("entries") or [])],
    )


# -----------------------------
# Item normalization
# -----------------------------
def _normalize_rss_item(entry: Any) -> ParsedFeedItem:
    link = _text(entry.get("link"))
    enclosure_url = _enclosure_url(entry)
    return ParsedFeedItem(
        id=_resolve(ID_CHAIN, entry) or "unknown",
        title=_text(entry.get("title")) or "Untitled",
        link=link,
        published=_text(entry.get("published")) or _text(entry.get("updated")),
        published_at=_published_at(entry),
        description=_content_value(entry) or _text(entry.get("summary")),
        enclosure_url=enclosure_url,
        thumbnail=_resolve(THUMBNAIL_CHAIN, entry) or _image_like(enclosure_url),
        duration_seconds=_resolve(DURATION_CHAIN, entry),
    )


def _normalize_atom_entry(entry: Any) -> ParsedFeedItem:
    enclosure_url = _enclosure_url(entry)
    return ParsedFeedItem(
        id=_resolve(ID_CHAIN, entry) or "unknown",
        title=_text(entry.get("title")) or "Untitled",
        link=_atom_primary_link(entry),
        published=_text(entry.get("published")) or _text(entry.get("updated")),
        published_at=_published_at(entry),
        description=_text(entry.get("summary")) or _content_value(entry),
        enclosure_url=enclosure_url,
        thumbnail=(
            _resolve(THUMBNAIL_CHAIN, entry)
            or _atom_image_enclosure(entry)
            or _image_like(enclosure_url)
        ),
        duration_seconds=_resolve(DURATION_CHAIN, entry),
    )


def _resolve(chain: Sequence[Resolver], obj: Any) -> Optional[Any]:
    for resolver in chain:
        value = resolver(obj)
        if value is not None and value != "":
            return value
    return None


# -----------------------------
# Small value helpers
# -----------------------------
def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        s = value.strip()
        return s or None
    if isinstance(value, dict):
        return _text(value.get("value") or value.get("href"))
    return None


def _as_list(value: Any) -> List[Any]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _media_url(value: Any) -> Optional[str]:
    for entry in _as_list(value):
        if isinstance(entry, str):
            return _text(entry)
        if isinstance(entry, dict):
            url = _text(entry.get("url")) or _text(entry.get("href"))
            if url:
                return url
    return None


def _media_group(entry: Any) -> dict:
    group = entry.get("media_group")
    return group if isinstance(group, dict) else {}


def _image_like(url: Optional[str]) -> Optional[str]:
    return url if is_likely_image_url(url) else None


def _content_value(entry: Any) -> Optional[str]:
    for c in _as_list(entry.get("content")):
        value = _text(c.get("value")) if isinstance(c, dict) else _text(c)
        if value:
            return value
    return None


def _published_at(entry: Any) -> Optional[datetime]:
    for key in ("published_parsed", "updated_parsed"):
        t = entry.get(key)
        if t:
            try:
                return datetime(*t[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    return parse_datetime(entry.get("published") or entry.get("updated"))


def _links(entry: Any) -> List[dict]:
    return [l for l in _as_list(entry.get("links")) if isinstance(l, dict)]


def _enclosure_url(entry: Any) -> Optional[str]:
    for link in _links(entry):
        if (link.get("rel") or "").lower() == "enclosure" and _text(link.get("href")):
            return _text(link.get("href"))
    for enc in _as_list(entry.get("enclosures")):
        if isinstance(enc, dict):
            url = _text(enc.get("href")) or _text(enc.get("url"))
            if url:
                return url
    return None


def _atom_primary_link(entry: Any) -> Optional[str]:
    links = [l for l in _links(entry) if _text(l.get("href"))]
    preferred = next((l for l in links if (l.get("rel") or "").lower() == "alternate"), None)
    if preferred is None and links:
        preferred = links[0]
    if preferred is not None:
        return _text(preferred.get("href"))
    return _text(entry.get("link"))


def _atom_image_enclosure(entry: Any) -> Optional[str]:
    for link in _links(entry):
        rel = (link.get("rel") or "").lower()
        mime = (link.get("type") or "").lower()
        if rel == "enclosure" and mime.startswith("image/"):
            return _text(link.get("href"))
    return None


# -----------------------------
# id chain
# -----------------------------
ID_CHAIN: Sequence[Resolver] = (
    lambda e: _text(e.get("yt_videoid")),
    lambda e: _text(e.get("id")) or _text(e.get("guid")),
    lambda e: _text(e.get("link")),
    lambda e: _text(e.get("title")),
)


# -----------------------------
# thumbnail chain
# -----------------------------
def _image_media_content(entry: Any) -> Optional[str]:
    candidates: Iterable[Any] = _as_list(_media_group(entry).get("media_content")) + _as_list(entry.get("media_content"))
    for mc in candidates:
        if not isinstance(mc, dict):
            continue
        url = _media_url(mc)
        if not url:
            continue
        mime = (mc.get("type") or "").lower()
        medium = (mc.get("medium") or "").lower()
        if mime.startswith("image/") or medium == "image" or is_likely_image_url(url):
            return url
    return None


def _cover_image(entry: Any) -> Optional[str]:
    image = entry.get("image")
    if isinstance(image, dict):
        return _text(image.get("href")) or _text(image.get("url"))
    return _media_url(entry.get("itunes_image"))


THUMBNAIL_CHAIN: Sequence[Resolver] = (
    lambda e: _media_url(e.get("media_thumbnail")),
    lambda e: _media_url(_media_group(e).get("media_thumbnail")),
    _image_media_content,
    _cover_image,
)


FEED_IMAGE_CHAIN: Sequence[Resolver] = (
    _cover_image,
    lambda f: _text(f.get("logo")),
    lambda f: _text(f.get("icon")),
)


# -----------------------------
# duration chain
# -----------------------------
def parse_duration_seconds(value: Any) -> Optional[int]:
    """Parse `SS`, `MM:SS` or `HH:MM:SS` into whole seconds."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    s = str(value).strip()
    if not s:
        return None
    if _DIGITS_RE.match(s):
        return int(s)
    parts = s.split(":")
    if not all(_DIGITS_RE.match(p.strip()) for p in parts):
        return None
    nums = [int(p) for p in parts]
    if len(nums) == 2:
        return nums[0] * 60 + nums[1]
    if len(nums) == 3:
        return nums[0] * 3600 + nums[1] * 60 + nums[2]
    return None


def _duration_attribute(value: Any, attr: str) -> Optional[int]:
    for entry in _as_list(value):
        if isinstance(entry, dict):
            seconds = parse_duration_seconds(entry.get(attr))
        else:
            seconds = parse_duration_seconds(entry)
        if seconds is not None:
            return seconds
    return None


DURATION_CHAIN: Sequence[Resolver] = (
    lambda e: _duration_attribute(_media_group(e).get("yt_duration") or e.get("yt_duration"), "seconds"),
    lambda e: _duration_attribute(_media_group(e).get("media_content") or e.get("media_content"), "duration"),
    lambda e: parse_duration_seconds(e.get("itunes_duration")),
)
