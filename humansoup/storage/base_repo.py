"""Repository interface for the content graph.

The indexers only talk to this boundary: keyed reads, inserts, updates,
deletes, ordered reads and aggregate counts. Change comparison stays in the
indexers so every backend behaves the same way.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from humansoup.storage.records import Candidate, ContentItem, CrawlLogEntry, Publisher


class BaseRepo:
    # -----------------------------
    # Publishers
    # -----------------------------
    def get_publisher_by_site_url(self, site_url: str) -> Optional[Publisher]:
        raise NotImplementedError

    def upsert_publisher(self, publisher: Publisher) -> Publisher:
        """Insert or update by `site_url`.

        An existing row keeps its `id` and `first_seen_at`. Returns the stored row.
        """
        raise NotImplementedError

    def touch_publisher(self, publisher_id: str, indexed_at: datetime) -> None:
        raise NotImplementedError

    def update_publisher_stats(
        self,
        publisher_id: str,
        *,
        post_count: int,
        last_published_at: Optional[datetime],
        trust_score: float,
        trust_signals: Dict[str, Any],
        content_hash: Optional[str] = None,
    ) -> None:
        """Store aggregates and trust. A given `content_hash` marks the crawl complete."""
        raise NotImplementedError

    def list_publishers_for_index(self, limit: int) -> List[Publisher]:
        """Enabled publishers, never-indexed first, then oldest `last_indexed_at`."""
        raise NotImplementedError

    # -----------------------------
    # Subscriptions
    # -----------------------------
    def count_active_subscribers(self, publisher_id: str) -> int:
        raise NotImplementedError

    def ensure_subscription(self, subscriber_key: str, publisher_id: str, source: str) -> bool:
        """Create an active subscription unless one exists. True when created."""
        raise NotImplementedError

    # -----------------------------
    # Content
    # -----------------------------
    def get_content(self, publisher_id: str, slug: str) -> Optional[ContentItem]:
        raise NotImplementedError

    def insert_content(self, item: ContentItem) -> None:
        raise NotImplementedError

    def update_content(self, item_id: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete_content(self, item_id: str) -> None:
        raise NotImplementedError

    def content_stats(self, publisher_id: str) -> Tuple[int, Optional[datetime]]:
        """(item count, newest published_at) for one publisher."""
        raise NotImplementedError

    def list_candidates(self, *, since: Optional[datetime] = None, limit: int = 500) -> List[Candidate]:
        raise NotImplementedError

    def list_content_missing_transcripts(self, limit: int) -> List[ContentItem]:
        """Video items with a media/content URL and no stored transcript."""
        raise NotImplementedError

    def set_transcript(self, item_id: str, text: str, language: Optional[str]) -> None:
        raise NotImplementedError

    # -----------------------------
    # Crawl log
    # -----------------------------
    def append_crawl_log(self, entry: CrawlLogEntry) -> None:
        raise NotImplementedError
