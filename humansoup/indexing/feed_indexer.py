"""RSS/Atom feed indexer.

One publisher per feed URL. Items are keyed by a deterministic slug so the
same feed item always maps to the same content row across crawls; only the
tracked fields trigger an update. Short-form videos from video-platform feeds
are filtered out (and removed if stored earlier).
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from humansoup.errors import SoupError
from humansoup.ingestion.content_types import ParsedFeedItem, SourceDescriptor
from humansoup.ingestion.feed_parser import parse_feed
from humansoup.ingestion.fetchers import fetch_feed_document
from humansoup.ingestion.url_utils import (
    host_from_url,
    is_likely_image_url,
    is_video_feed_url,
    key_hash,
    normalize_site_url,
    slugify,
    stable_hash,
)
from humansoup.scoring.topics import classify_topics
from humansoup.scoring.trust import TrustSignals, calculate_trust, has_custom_domain, history_months
from humansoup.storage.base_repo import BaseRepo
from humansoup.storage.records import ContentItem, CrawlLogEntry, Publisher, changed_fields

logger = logging.getLogger(__name__)

MIN_LONG_FORM_VIDEO_SECONDS = 180
EXCERPT_MAX_CHARS = 220
FEED_PUBLISHER_BIO = "Imported from RSS"

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class FeedIndexResult:
    feed_url: str
    status: str  # success | unchanged | failed
    publisher_id: Optional[str] = None
    items_found: int = 0
    items_new: int = 0
    items_updated: int = 0
    items_skipped: int = 0
    error: Optional[str] = None
    duration_ms: int = 0

    @property
    def items_indexed(self) -> int:
        return self.items_new + self.items_updated


# -----------------------------
# Pure helpers
# -----------------------------
def build_excerpt(description: Optional[str]) -> Optional[str]:
    """Strip tags, collapse whitespace, cap at 220 chars with a "..." suffix."""
    if not description:
        return None
    text = _WS_RE.sub(" ", _TAG_RE.sub(" ", description)).strip()
    if not text:
        return None
    if len(text) > EXCERPT_MAX_CHARS:
        return text[: EXCERPT_MAX_CHARS - 3] + "..."
    return text


def build_item_slug(item_id: Optional[str], title: Optional[str], link: Optional[str]) -> str:
    seed = item_id or link or title or "item"
    base = slugify(title or seed) or "item"
    return f"{base}-{key_hash(seed)[:8]}"


def derive_handle(title: Optional[str], feed_url: str) -> str:
    base = slugify(title or host_from_url(feed_url) or "source")
    return f"{base}-{key_hash(feed_url)[:6]}"


def should_skip_short_form(feed_url: str, item: ParsedFeedItem) -> bool:
    """True for short-form videos on recognized video-platform feeds."""
    if not is_video_feed_url(feed_url):
        return False
    duration = item.duration_seconds
    if duration is not None and 0 < duration < MIN_LONG_FORM_VIDEO_SECONDS:
        return True
    marker_text = " ".join(v for v in (item.title, item.description, item.link) if v).lower()
    return "#shorts" in marker_text or "/shorts/" in marker_text


def media_url_for(source_type: str, item: ParsedFeedItem) -> Optional[str]:
    if source_type == "audio":
        return item.enclosure_url or item.link
    if source_type == "video":
        return item.link or item.enclosure_url
    return None


def _content_from_item(publisher_id: str, source_type: str, slug: str, item: ParsedFeedItem) -> ContentItem:
    excerpt = build_excerpt(item.description)
    thumbnail = item.thumbnail or (item.enclosure_url if is_likely_image_url(item.enclosure_url) else None)
    return ContentItem(
        publisher_id=publisher_id,
        slug=slug,
        title=item.title,
        content_type=source_type,
        excerpt=excerpt,
        content_url=item.link,
        media_url=media_url_for(source_type, item),
        media_duration=item.duration_seconds,
        media_thumbnail=thumbnail,
        published_at=item.published_at,
        topics=classify_topics(item.title, excerpt),
    )


# -----------------------------
# Indexing
# -----------------------------
def index_feed_source(repo: BaseRepo, descriptor: SourceDescriptor, limit_per_feed: int = 20) -> FeedIndexResult:
    start = time.monotonic()
    feed_url = descriptor.feed_url

    def finish(result: FeedIndexResult, content_hash: Optional[str], at: datetime) -> FeedIndexResult:
        repo.append_crawl_log(
            CrawlLogEntry(
                source_url=feed_url,
                status=result.status,
                crawled_at=at,
                publisher_id=result.publisher_id,
                content_hash=content_hash,
                posts_found=result.items_found,
                posts_new=result.items_new,
                posts_updated=result.items_updated,
                error=result.error,
                duration_ms=result.duration_ms,
            )
        )
        return result

    def failed(message: str, publisher_id: Optional[str] = None) -> FeedIndexResult:
        result = FeedIndexResult(
            feed_url=feed_url,
            status="failed",
            publisher_id=publisher_id,
            error=message,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return finish(result, None, datetime.now(timezone.utc))

    xml = fetch_feed_document(feed_url)
    if xml is None:
        return failed("Feed fetch failed")
    try:
        feed = parse_feed(xml)
    except SoupError as e:
        logger.warning(f"Feed parse failed: {feed_url} ({e})")
        return failed(str(e))

    now = datetime.now(timezone.utc)
    fingerprint = stable_hash(xml)
    items = feed.items[: max(0, int(limit_per_feed))]
    publisher_id = None
    try:
        existing = repo.get_publisher_by_site_url(feed_url)
        publisher_id = existing.id if existing else None

        if existing and existing.content_hash == fingerprint:
            repo.touch_publisher(existing.id, now)
            result = FeedIndexResult(
                feed_url=feed_url,
                status="unchanged",
                publisher_id=existing.id,
                items_found=len(items),
                duration_ms=int((time.monotonic() - start) * 1000),
            )
            return finish(result, fingerprint, now)

        site_url = normalize_site_url(descriptor.site_url) if descriptor.site_url else None
        handle = (existing.handle if existing else None) or derive_handle(feed.title, feed_url)
        # The new fingerprint is stored only once every item is written.
        publisher = repo.upsert_publisher(
            Publisher(
                site_url=feed_url,
                name=descriptor.name or feed.title or handle,
                source_kind="feed",
                handle=handle,
                bio=FEED_PUBLISHER_BIO,
                avatar=feed.image or (existing.avatar if existing else None),
                content_hash=existing.content_hash if existing else None,
                content_types=[descriptor.source_type],
                links={
                    "rss": feed_url,
                    "website": site_url or feed.link,
                    "sourceType": descriptor.source_type,
                },
                first_seen_at=existing.first_seen_at if existing else now,
                last_indexed_at=now,
                soup_enabled=existing.soup_enabled if existing else True,
            )
        )
        publisher_id = publisher.id

        new = updated = skipped = 0
        for item in items:
            slug = build_item_slug(item.id, item.title, item.link)
            stored = repo.get_content(publisher.id, slug)

            if descriptor.source_type == "video" and should_skip_short_form(feed_url, item):
                if stored is not None:
                    repo.delete_content(stored.id)
                skipped += 1
                continue

            incoming = _content_from_item(publisher.id, descriptor.source_type, slug, item)
            if stored is None:
                repo.insert_content(incoming)
                new += 1
                continue
            changes = changed_fields(stored, incoming)
            if changes:
                changes.update(content_url=incoming.content_url, topics=incoming.topics)
                repo.update_content(stored.id, changes)
                updated += 1

        post_count, last_published_at = repo.content_stats(publisher.id)
        signals = TrustSignals(
            has_custom_domain=has_custom_domain(site_url or feed.link or feed_url),
            history_months=history_months(publisher.first_seen_at, now),
            post_count=post_count,
            subscriber_count=repo.count_active_subscribers(publisher.id),
            verified=False,
        )
        repo.update_publisher_stats(
            publisher.id,
            post_count=post_count,
            last_published_at=last_published_at,
            trust_score=calculate_trust(signals),
            trust_signals=signals.to_dict(),
            content_hash=fingerprint,
        )
    except Exception as e:
        logger.error(f"Feed index failed: {feed_url} ({e})")
        return failed(str(e), publisher_id)

    result = FeedIndexResult(
        feed_url=feed_url,
        status="success",
        publisher_id=publisher.id,
        items_found=len(items),
        items_new=new,
        items_updated=updated,
        items_skipped=skipped,
        duration_ms=int((time.monotonic() - start) * 1000),
    )
    logger.info(f"Indexed feed {feed_url}: {len(items)} items ({new} new, {updated} updated, {skipped} skipped)")
    return finish(result, fingerprint, now)
