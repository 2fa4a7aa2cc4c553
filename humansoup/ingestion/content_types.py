"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


SOURCE_TYPES = ("video", "audio", "article")


@dataclass(frozen=True)
class ParsedFeedItem:
    """One normalized RSS item / Atom entry.

    Every field except `id` and `title` may be absent.
    """

    id: str
    title: str
    link: Optional[str] = None
    published: Optional[str] = None
    published_at: Optional[datetime] = None
    description: Optional[str] = None
    enclosure_url: Optional[str] = None
    thumbnail: Optional[str] = None
    duration_seconds: Optional[int] = None


@dataclass(frozen=True)
class ParsedFeed:
    title: str
    kind: str  # rss | atom
    link: Optional[str] = None
    image: Optional[str] = None
    items: List[ParsedFeedItem] = field(default_factory=list)


@dataclass(frozen=True)
class SourceDescriptor:
    """A feed supplied by configuration/registration for one consumer."""

    feed_url: str
    source_type: str = "article"
    name: Optional[str] = None
    site_url: Optional[str] = None
    confidence: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceDescriptor":
        source_type = str(data.get("source_type") or data.get("sourceType") or data.get("type") or "article").lower()
        if source_type not in SOURCE_TYPES:
            raise ValueError(f"unknown source type: {source_type}")
        feed_url = str(data.get("feed_url") or data.get("feedUrl") or "").strip()
        if not feed_url:
            raise ValueError("feed_url is required")
        confidence = data.get("confidence")
        return cls(
            feed_url=feed_url,
            source_type=source_type,
            name=data.get("name") or None,
            site_url=data.get("site_url") or data.get("siteUrl") or None,
            confidence=float(confidence) if confidence is not None else None,
        )


@dataclass(frozen=True)
class ProfileFetch:
    """A fetched and validated profile document plus its fingerprint."""

    profile: Dict[str, Any]
    raw: str
    hash: str
