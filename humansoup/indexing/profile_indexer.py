"""Profile-document indexer.

Fetches a publisher's profile document, short-circuits on an unchanged
fingerprint, upserts the publisher, diffs posts by (publisher, slug),
recomputes aggregates and trust, and appends one crawl-log row per attempt.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from humansoup.contracts.profile_document import (
    ProfilePost,
    extract_posts,
    profile_handle,
    profile_text,
    subscribe_intent,
    verification,
)
from humansoup.errors import SoupError
from humansoup.ingestion.fetchers import fetch_profile_document
from humansoup.ingestion.url_utils import build_content_url, normalize_site_url
from humansoup.scoring.topics import classify_topics
from humansoup.scoring.trust import TrustSignals, calculate_trust, history_months
from humansoup.storage.base_repo import BaseRepo
from humansoup.storage.records import ContentItem, CrawlLogEntry, Publisher, changed_fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexResult:
    site_url: str
    status: str  # success | unchanged | failed
    posts_found: int = 0
    posts_new: int = 0
    posts_updated: int = 0
    error: Optional[str] = None
    duration_ms: int = 0
    publisher_id: Optional[str] = None


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _log(repo: BaseRepo, result: IndexResult, content_hash: Optional[str], at: datetime) -> IndexResult:
    repo.append_crawl_log(
        CrawlLogEntry(
            source_url=result.site_url,
            status=result.status,
            crawled_at=at,
            publisher_id=result.publisher_id,
            content_hash=content_hash,
            posts_found=result.posts_found,
            posts_new=result.posts_new,
            posts_updated=result.posts_updated,
            error=result.error,
            duration_ms=result.duration_ms,
        )
    )
    return result


def has_custom_profile_domain(site_url: str) -> bool:
    return ".me3.app" not in site_url and "localhost" not in site_url


def _content_from_post(publisher_id: str, site_url: str, post: ProfilePost) -> ContentItem:
    return ContentItem(
        publisher_id=publisher_id,
        slug=post.slug,
        title=post.title,
        content_type="article",
        excerpt=post.excerpt,
        content_url=build_content_url(site_url, post.slug),
        file_path=post.file,
        media_url=post.media_url,
        media_duration=post.media_duration,
        media_thumbnail=post.media_thumbnail,
        published_at=post.published_at,
        topics=classify_topics(post.title, post.excerpt),
    )


def index_profile_source(repo: BaseRepo, site_url: str) -> IndexResult:
    start = time.monotonic()
    site_url = normalize_site_url(site_url)

    def failed(message: str, publisher_id: Optional[str] = None) -> IndexResult:
        result = IndexResult(
            site_url=site_url,
            status="failed",
            error=message,
            duration_ms=_elapsed_ms(start),
            publisher_id=publisher_id,
        )
        return _log(repo, result, None, datetime.now(timezone.utc))

    try:
        fetched = fetch_profile_document(site_url)
    except SoupError as e:
        logger.warning(f"Profile fetch failed: {site_url} ({e})")
        return failed(str(e))

    profile = fetched.profile
    posts = extract_posts(profile)
    now = datetime.now(timezone.utc)
    publisher_id = None
    try:
        existing = repo.get_publisher_by_site_url(site_url)
        publisher_id = existing.id if existing else None

        if existing and existing.content_hash == fetched.hash:
            repo.touch_publisher(existing.id, now)
            result = IndexResult(
                site_url=site_url,
                status="unchanged",
                posts_found=len(posts),
                duration_ms=_elapsed_ms(start),
                publisher_id=existing.id,
            )
            return _log(repo, result, fetched.hash, now)

        verified, verified_at = verification(profile)
        intent = subscribe_intent(profile)
        links = profile.get("links") if isinstance(profile.get("links"), dict) else {}
        # The new fingerprint is stored only once every post is written.
        publisher = repo.upsert_publisher(
            Publisher(
                site_url=site_url,
                name=str(profile.get("name")),
                source_kind="profile",
                handle=profile_handle(profile),
                bio=profile_text(profile, "bio"),
                location=profile_text(profile, "location"),
                avatar=profile_text(profile, "avatar"),
                banner=profile_text(profile, "banner"),
                content_hash=existing.content_hash if existing else None,
                content_types=["article"] if posts else [],
                links=links,
                subscribe_enabled=intent["enabled"],
                subscribe_title=intent["title"],
                subscribe_description=intent["description"],
                subscribe_frequency=intent["frequency"],
                verified=verified,
                verified_at=verified_at,
                first_seen_at=existing.first_seen_at if existing else now,
                last_indexed_at=now,
                soup_enabled=existing.soup_enabled if existing else True,
            )
        )
        publisher_id = publisher.id

        posts_new = 0
        posts_updated = 0
        for post in posts:
            incoming = _content_from_post(publisher.id, site_url, post)
            stored = repo.get_content(publisher.id, post.slug)
            if stored is None:
                repo.insert_content(incoming)
                posts_new += 1
                continue
            changes = changed_fields(stored, incoming)
            if changes:
                changes.update(content_url=incoming.content_url, file_path=incoming.file_path, topics=incoming.topics)
                repo.update_content(stored.id, changes)
                posts_updated += 1

        dates = [p.published_at for p in posts if p.published_at]
        signals = TrustSignals(
            has_custom_domain=has_custom_profile_domain(site_url),
            history_months=history_months(publisher.first_seen_at, now),
            post_count=len(posts),
            subscriber_count=repo.count_active_subscribers(publisher.id),
            verified=verified,
        )
        repo.update_publisher_stats(
            publisher.id,
            post_count=len(posts),
            last_published_at=max(dates) if dates else None,
            trust_score=calculate_trust(signals),
            trust_signals=signals.to_dict(),
            content_hash=fetched.hash,
        )
    except Exception as e:
        logger.error(f"Profile index failed: {site_url} ({e})")
        return failed(str(e), publisher_id)

    result = IndexResult(
        site_url=site_url,
        status="success",
        posts_found=len(posts),
        posts_new=posts_new,
        posts_updated=posts_updated,
        duration_ms=_elapsed_ms(start),
        publisher_id=publisher.id,
    )
    logger.info(f"Indexed {site_url}: {len(posts)} posts ({posts_new} new, {posts_updated} updated)")
    return _log(repo, result, fetched.hash, now)
