"""Durable content-graph records.

Plain dataclasses shared by every repository implementation. Publishers and
content items are mutable rows; crawl-log entries are append-only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Publisher:
    site_url: str
    name: str
    source_kind: str = "profile"  # profile | feed
    id: str = field(default_factory=new_id)
    handle: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    avatar: Optional[str] = None
    banner: Optional[str] = None
    content_hash: Optional[str] = None
    content_types: List[str] = field(default_factory=list)
    links: Dict[str, Any] = field(default_factory=dict)
    subscribe_enabled: bool = False
    subscribe_title: Optional[str] = None
    subscribe_description: Optional[str] = None
    subscribe_frequency: Optional[str] = None
    post_count: int = 0
    last_published_at: Optional[datetime] = None
    trust_score: float = 0.0
    trust_signals: Dict[str, Any] = field(default_factory=dict)
    verified: bool = False
    verified_at: Optional[datetime] = None
    soup_enabled: bool = True
    first_seen_at: Optional[datetime] = None
    last_indexed_at: Optional[datetime] = None


@dataclass
class ContentItem:
    publisher_id: str
    slug: str
    title: str
    content_type: str = "article"  # article | video | audio
    id: str = field(default_factory=new_id)
    excerpt: Optional[str] = None
    content_url: Optional[str] = None
    file_path: Optional[str] = None
    media_url: Optional[str] = None
    media_duration: Optional[int] = None
    media_thumbnail: Optional[str] = None
    published_at: Optional[datetime] = None
    topics: List[str] = field(default_factory=list)
    transcript_text: Optional[str] = None
    transcript_language: Optional[str] = None


# Fields compared by the indexers before issuing an update.
TRACKED_CONTENT_FIELDS = (
    "title",
    "excerpt",
    "content_type",
    "media_url",
    "media_duration",
    "media_thumbnail",
    "published_at",
)


@dataclass(frozen=True)
class CrawlLogEntry:
    source_url: str
    status: str  # success | unchanged | failed
    crawled_at: datetime
    publisher_id: Optional[str] = None
    content_hash: Optional[str] = None
    posts_found: int = 0
    posts_new: int = 0
    posts_updated: int = 0
    error: Optional[str] = None
    duration_ms: int = 0
    id: str = field(default_factory=new_id)


@dataclass
class Subscription:
    subscriber_key: str
    publisher_id: str
    source: str
    subscribed_at: datetime
    unsubscribed_at: Optional[datetime] = None


@dataclass(frozen=True)
class Candidate:
    """Ranking read model: a content item joined with its publisher."""

    id: str
    title: str
    content_type: str
    publisher_name: str = ""
    publisher_handle: Optional[str] = None
    content_url: Optional[str] = None
    published_at: Optional[datetime] = None
    excerpt: Optional[str] = None
    topics: List[str] = field(default_factory=list)
    media_url: Optional[str] = None
    media_thumbnail: Optional[str] = None
    transcript_text: Optional[str] = None
    transcript_language: Optional[str] = None


def changed_fields(existing: ContentItem, incoming: ContentItem) -> Dict[str, Any]:
    """Tracked fields whose incoming value differs from the stored row."""
    return {
        name: getattr(incoming, name)
        for name in TRACKED_CONTENT_FIELDS
        if getattr(existing, name) != getattr(incoming, name)
    }
