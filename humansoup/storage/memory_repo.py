"""Process-local repository (tests, dry runs)."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from humansoup.storage.base_repo import BaseRepo
from humansoup.storage.records import Candidate, ContentItem, CrawlLogEntry, Publisher, Subscription

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class InMemoryRepo(BaseRepo):
    def __init__(self):
        self.publishers: Dict[str, Publisher] = {}
        self.content: Dict[str, ContentItem] = {}
        self.crawl_log: List[CrawlLogEntry] = []
        self.subscriptions: List[Subscription] = []
        # Counts every insert/update/delete issued against content rows.
        self.content_writes = 0

    def get_publisher_by_site_url(self, site_url: str) -> Optional[Publisher]:
        for pub in self.publishers.values():
            if pub.site_url == site_url:
                return replace(pub)
        return None

    def upsert_publisher(self, publisher: Publisher) -> Publisher:
        existing = self.get_publisher_by_site_url(publisher.site_url)
        stored = replace(publisher)
        if existing:
            stored.id = existing.id
            stored.first_seen_at = existing.first_seen_at or publisher.first_seen_at
        elif stored.first_seen_at is None:
            stored.first_seen_at = datetime.now(timezone.utc)
        self.publishers[stored.id] = stored
        return replace(stored)

    def touch_publisher(self, publisher_id: str, indexed_at: datetime) -> None:
        if publisher_id in self.publishers:
            self.publishers[publisher_id].last_indexed_at = indexed_at

    def update_publisher_stats(self, publisher_id, *, post_count, last_published_at, trust_score, trust_signals, content_hash=None) -> None:
        pub = self.publishers.get(publisher_id)
        if not pub:
            return
        pub.post_count = post_count
        pub.last_published_at = last_published_at
        pub.trust_score = trust_score
        pub.trust_signals = dict(trust_signals)
        if content_hash is not None:
            pub.content_hash = content_hash

    def list_publishers_for_index(self, limit: int) -> List[Publisher]:
        enabled = [p for p in self.publishers.values() if p.soup_enabled]
        enabled.sort(key=lambda p: (p.last_indexed_at is not None, p.last_indexed_at or _EPOCH))
        return [replace(p) for p in enabled[: max(0, int(limit))]]

    def count_active_subscribers(self, publisher_id: str) -> int:
        return sum(1 for s in self.subscriptions if s.publisher_id == publisher_id and s.unsubscribed_at is None)

    def ensure_subscription(self, subscriber_key: str, publisher_id: str, source: str) -> bool:
        for s in self.subscriptions:
            if s.subscriber_key == subscriber_key and s.publisher_id == publisher_id and s.unsubscribed_at is None:
                return False
        self.subscriptions.append(
            Subscription(
                subscriber_key=subscriber_key,
                publisher_id=publisher_id,
                source=source,
                subscribed_at=datetime.now(timezone.utc),
            )
        )
        return True

    def get_content(self, publisher_id: str, slug: str) -> Optional[ContentItem]:
        for item in self.content.values():
            if item.publisher_id == publisher_id and item.slug == slug:
                return replace(item)
        return None

    def insert_content(self, item: ContentItem) -> None:
        if self.get_content(item.publisher_id, item.slug):
            raise ValueError(f"duplicate content slug for publisher: {item.slug}")
        self.content[item.id] = replace(item)
        self.content_writes += 1

    def update_content(self, item_id: str, fields: Dict[str, Any]) -> None:
        item = self.content.get(item_id)
        if not item:
            return
        for k, v in fields.items():
            setattr(item, k, v)
        self.content_writes += 1

    def delete_content(self, item_id: str) -> None:
        if self.content.pop(item_id, None) is not None:
            self.content_writes += 1

    def content_stats(self, publisher_id: str) -> Tuple[int, Optional[datetime]]:
        items = [i for i in self.content.values() if i.publisher_id == publisher_id]
        dates = [i.published_at for i in items if i.published_at]
        return len(items), (max(dates) if dates else None)

    def list_candidates(self, *, since: Optional[datetime] = None, limit: int = 500) -> List[Candidate]:
        out: List[Candidate] = []
        for item in self.content.values():
            pub = self.publishers.get(item.publisher_id)
            if not pub or not pub.soup_enabled:
                continue
            if since and item.published_at and item.published_at < since:
                continue
            out.append(
                Candidate(
                    id=item.id,
                    title=item.title,
                    content_type=item.content_type,
                    publisher_name=pub.name,
                    publisher_handle=pub.handle,
                    content_url=item.content_url,
                    published_at=item.published_at,
                    excerpt=item.excerpt,
                    topics=list(item.topics),
                    media_url=item.media_url,
                    media_thumbnail=item.media_thumbnail,
                    transcript_text=item.transcript_text,
                    transcript_language=item.transcript_language,
                )
            )
        out.sort(key=lambda c: c.published_at or _EPOCH, reverse=True)
        return out[: max(0, int(limit))]

    def list_content_missing_transcripts(self, limit: int) -> List[ContentItem]:
        out = [
            replace(i)
            for i in self.content.values()
            if i.content_type == "video" and not i.transcript_text and (i.media_url or i.content_url)
        ]
        out.sort(key=lambda i: i.published_at or _EPOCH, reverse=True)
        return out[: max(0, int(limit))]

    def set_transcript(self, item_id: str, text: str, language: Optional[str]) -> None:
        item = self.content.get(item_id)
        if item:
            item.transcript_text = text
            item.transcript_language = language

    def append_crawl_log(self, entry: CrawlLogEntry) -> None:
        self.crawl_log.append(entry)
