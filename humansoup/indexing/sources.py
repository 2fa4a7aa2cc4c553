"""Source registry: which feeds to index for which consumer.

The registry is injected into the consumer indexing pass. The default table
is the built-in demo set; a JSON file can replace it:

    {"demo": {"display_name": "Demo", "sources": [{"feed_url": "...", "source_type": "audio"}]}}

A bare list of descriptors per consumer key is accepted too.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from humansoup.ingestion.content_types import SourceDescriptor
from humansoup.ingestion.url_utils import key_hash
from humansoup.indexing.feed_indexer import index_feed_source
from humansoup.storage.base_repo import BaseRepo

logger = logging.getLogger(__name__)

SUBSCRIPTION_SOURCE = "demo_sources"

_YT = "https://www.youtube.com/feeds/videos.xml?channel_id="

DEMO_SOURCES: Dict[str, Dict[str, Any]] = {
    "demo": {
        "display_name": "Demo",
        "sources": [
            # Video channels
            *[
                {"feed_url": _YT + cid, "source_type": "video"}
                for cid in (
                    "UCFECM-p3CF81Tp_l2sJsiyg",
                    "UCWyqj7kWQBxrsEFm_Vmsqng",
                    "UCsVgseBnKuyIGaH54XVoK3Q",
                    "UCcYzLCs3zrQIBVHYA1sK2sw",
                    "UC2SuCfuG0-ZUweqX_jDjf9Q",
                    "UCsBjURrPoezykLs9EqgamOA",
                    "UCswH8ovgUp5Bdg-0_JTYFNw",
                    "UC4CbSdwkunwwsNEoEbelOVA",
                    "UCt1rnzRJzfVfMwjnccCgKFw",
                    "UC4bTRXU-ycVU516_pZbKG4g",
                )
            ],
            # Newsletters / blogs
            *[
                {"feed_url": url, "source_type": "article"}
                for url in (
                    "https://charleseisenstein.substack.com/feed",
                    "https://drbramley.substack.com/feed",
                    "https://newsletter.xavierdagba.com/feed",
                    "https://bernhardguenther.substack.com/feed",
                    "https://sgrstk.substack.com/feed",
                    "https://lauramatsue.substack.com/feed",
                    "https://newsletter.semianalysis.com/feed",
                    "https://chamath.substack.com/feed",
                    "https://newsletter.pragmaticengineer.com/feed",
                    "https://www.lennysnewsletter.com/feed",
                    "https://www.noahpinion.blog/feed",
                    "https://www.operatingbyjohnbrewton.com/feed",
                )
            ],
            # Podcasts
            *[
                {"feed_url": url, "source_type": "audio"}
                for url in (
                    "https://feeds.megaphone.fm/GLT1412515089",
                    "https://feeds.fireside.fm/projectorandtheflail/rss",
                    "https://rss2.flightcast.com/xmsftuzjjykcmqwolaqn6mdn",
                    "https://feeds.megaphone.fm/thispastweekend",
                    "https://feeds.megaphone.fm/WWO7410387571",
                    "https://feeds.megaphone.fm/RSV1597324942",
                    "https://www.spreaker.com/show/5956723/episodes/feed",
                    "https://feeds.simplecast.com/UCwaTX1J",
                )
            ],
        ],
    },
}


@dataclass
class SourceRegistry:
    sources: Dict[str, List[SourceDescriptor]] = field(default_factory=dict)
    display_names: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceRegistry":
        sources: Dict[str, List[SourceDescriptor]] = {}
        names: Dict[str, str] = {}
        for consumer, entry in (data or {}).items():
            if isinstance(entry, dict):
                raw = entry.get("sources") or []
                name = entry.get("display_name") or entry.get("displayName")
                if name:
                    names[consumer] = str(name)
            else:
                raw = entry or []
            sources[consumer] = [SourceDescriptor.from_dict(d) for d in raw]
        return cls(sources=sources, display_names=names)

    @classmethod
    def demo(cls) -> "SourceRegistry":
        return cls.from_dict(DEMO_SOURCES)

    @classmethod
    def from_file(cls, path: str) -> "SourceRegistry":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def for_consumer(self, consumer: str) -> List[SourceDescriptor]:
        return list(self.sources.get(consumer) or [])


def load_registry(path: Optional[str] = None) -> SourceRegistry:
    if path:
        logger.info(f"Loading source registry from {path}")
        return SourceRegistry.from_file(path)
    return SourceRegistry.demo()


@dataclass(frozen=True)
class IndexSourcesResult:
    consumer: str
    feeds_indexed: int = 0
    items_indexed: int = 0
    publisher_ids: List[str] = field(default_factory=list)


def subscriber_key(consumer: str) -> str:
    return key_hash(f"handle:{consumer}")


def ensure_subscriptions(repo: BaseRepo, consumer: str, publisher_ids: List[str]) -> int:
    key = subscriber_key(consumer)
    return sum(1 for pid in publisher_ids if repo.ensure_subscription(key, pid, SUBSCRIPTION_SOURCE))


def index_consumer_sources(
    repo: BaseRepo,
    registry: SourceRegistry,
    consumer: str,
    limit_per_feed: int = 20,
) -> IndexSourcesResult:
    descriptors = registry.for_consumer(consumer)
    if not descriptors:
        return IndexSourcesResult(consumer=consumer)

    publisher_ids: List[str] = []
    items_indexed = 0
    for descriptor in descriptors:
        try:
            result = index_feed_source(repo, descriptor, limit_per_feed=limit_per_feed)
        except Exception as e:
            logger.error(f"Consumer {consumer}: feed {descriptor.feed_url} failed ({e})")
            continue
        if result.status == "failed" or not result.publisher_id:
            continue
        publisher_ids.append(result.publisher_id)
        items_indexed += result.items_indexed

    if publisher_ids:
        ensure_subscriptions(repo, consumer, publisher_ids)

    logger.info(f"Consumer {consumer}: {len(publisher_ids)}/{len(descriptors)} feeds, {items_indexed} items indexed")
    return IndexSourcesResult(
        consumer=consumer,
        feeds_indexed=len(publisher_ids),
        items_indexed=items_indexed,
        publisher_ids=publisher_ids,
    )
