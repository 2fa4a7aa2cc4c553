"""Scheduled re-index pass over stored publishers.

Publishers are drained from an explicit single-worker queue, strictly one at
a time. A failure on one publisher never stops the batch.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Union

from humansoup.indexing.feed_indexer import FeedIndexResult, index_feed_source
from humansoup.indexing.profile_indexer import IndexResult, index_profile_source
from humansoup.ingestion.content_types import SOURCE_TYPES, SourceDescriptor
from humansoup.storage.base_repo import BaseRepo
from humansoup.storage.records import Publisher

logger = logging.getLogger(__name__)

AnyIndexResult = Union[IndexResult, FeedIndexResult]


@dataclass(frozen=True)
class ScheduledIndexResult:
    results: List[AnyIndexResult]

    def count(self, status: str) -> int:
        return sum(1 for r in self.results if r.status == status)


def descriptor_for(publisher: Publisher) -> SourceDescriptor:
    links = publisher.links or {}
    source_type = str(links.get("sourceType") or (publisher.content_types or ["article"])[0])
    if source_type not in SOURCE_TYPES:
        source_type = "article"
    return SourceDescriptor(
        feed_url=str(links.get("rss") or publisher.site_url),
        source_type=source_type,
        name=publisher.name,
        site_url=links.get("website") or None,
    )


def _index_one(repo: BaseRepo, publisher: Publisher, limit_per_feed: int) -> AnyIndexResult:
    if publisher.source_kind == "feed":
        return index_feed_source(repo, descriptor_for(publisher), limit_per_feed=limit_per_feed)
    return index_profile_source(repo, publisher.site_url)


def run_scheduled_index(repo: BaseRepo, batch_size: int = 50, limit_per_feed: int = 20) -> ScheduledIndexResult:
    queue: Deque[Publisher] = deque(repo.list_publishers_for_index(batch_size))
    results: List[AnyIndexResult] = []
    if not queue:
        logger.info("No publishers due for indexing")
        return ScheduledIndexResult(results=results)

    logger.info(f"Scheduled index pass: {len(queue)} publishers queued")
    while queue:
        publisher = queue.popleft()
        try:
            results.append(_index_one(repo, publisher, limit_per_feed))
        except Exception as e:
            logger.error(f"Indexing failed for {publisher.site_url}: {e}")
            results.append(
                IndexResult(site_url=publisher.site_url, status="failed", error=str(e), publisher_id=publisher.id)
            )

    summary = ScheduledIndexResult(results=results)
    logger.info(
        f"Scheduled index pass done: {summary.count('success')} success, "
        f"{summary.count('unchanged')} unchanged, {summary.count('failed')} failed"
    )
    return summary
