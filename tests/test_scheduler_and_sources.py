import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from humansoup.indexing.feed_indexer import FeedIndexResult
from humansoup.indexing.profile_indexer import IndexResult
from humansoup.indexing.scheduler import descriptor_for, run_scheduled_index
from humansoup.indexing.sources import (
    SUBSCRIPTION_SOURCE,
    SourceRegistry,
    index_consumer_sources,
    subscriber_key,
)
from humansoup.storage.memory_repo import InMemoryRepo
from humansoup.storage.records import Publisher


NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


def _seed(repo):
    repo.upsert_publisher(Publisher(site_url="https://a.example.com", name="A", last_indexed_at=NOW))
    repo.upsert_publisher(
        Publisher(
            site_url="https://feeds.example.com/b",
            name="B",
            source_kind="feed",
            links={"rss": "https://feeds.example.com/b", "sourceType": "audio"},
            last_indexed_at=NOW - timedelta(days=2),
        )
    )
    repo.upsert_publisher(Publisher(site_url="https://c.example.com", name="C"))
    repo.upsert_publisher(Publisher(site_url="https://off.example.com", name="Off", soup_enabled=False))


class TestScheduledIndex(unittest.TestCase):
    def test_ordering_and_enabled_filter(self):
        repo = InMemoryRepo()
        _seed(repo)
        due = [p.name for p in repo.list_publishers_for_index(10)]
        self.assertEqual(due, ["C", "B", "A"])
        self.assertEqual(len(repo.list_publishers_for_index(2)), 2)

    @patch("humansoup.indexing.scheduler.index_feed_source")
    @patch("humansoup.indexing.scheduler.index_profile_source")
    def test_failure_does_not_stop_batch(self, index_profile, index_feed):
        repo = InMemoryRepo()
        _seed(repo)
        index_profile.side_effect = [
            RuntimeError("boom"),
            IndexResult(site_url="https://a.example.com", status="success"),
        ]
        index_feed.return_value = FeedIndexResult(feed_url="https://feeds.example.com/b", status="unchanged")

        summary = run_scheduled_index(repo, batch_size=50)

        self.assertEqual([r.status for r in summary.results], ["failed", "unchanged", "success"])
        self.assertEqual(summary.results[0].error, "boom")
        descriptor = index_feed.call_args[0][1]
        self.assertEqual(descriptor.feed_url, "https://feeds.example.com/b")
        self.assertEqual(descriptor.source_type, "audio")

    def test_empty_batch(self):
        self.assertEqual(run_scheduled_index(InMemoryRepo()).results, [])

    def test_descriptor_falls_back_to_site_url(self):
        pub = Publisher(site_url="https://feeds.example.com/x", name="X", source_kind="feed", content_types=["video"])
        d = descriptor_for(pub)
        self.assertEqual(d.feed_url, "https://feeds.example.com/x")
        self.assertEqual(d.source_type, "video")


class TestSources(unittest.TestCase):
    def test_demo_registry(self):
        registry = SourceRegistry.demo()
        sources = registry.for_consumer("demo")
        self.assertEqual(len(sources), 30)
        self.assertEqual({s.source_type for s in sources}, {"video", "audio", "article"})
        self.assertEqual(registry.for_consumer("nobody"), [])

    def test_from_dict_accepts_both_key_styles(self):
        registry = SourceRegistry.from_dict(
            {
                "alice": [{"feedUrl": "https://x.example.com/feed", "sourceType": "audio"}],
                "bob": {"display_name": "Bob", "sources": [{"feed_url": "https://y.example.com/rss"}]},
            }
        )
        self.assertEqual(registry.for_consumer("alice")[0].source_type, "audio")
        self.assertEqual(registry.for_consumer("bob")[0].source_type, "article")
        self.assertEqual(registry.display_names["bob"], "Bob")

        with self.assertRaises(ValueError):
            SourceRegistry.from_dict({"x": [{"feed_url": "https://z", "source_type": "podcast"}]})

    @patch("humansoup.indexing.sources.index_feed_source")
    def test_consumer_pass_skips_failures_and_subscribes(self, index_feed):
        repo = InMemoryRepo()
        pub = repo.upsert_publisher(Publisher(site_url="https://ok.example.com/feed", name="OK", source_kind="feed"))
        index_feed.side_effect = [
            FeedIndexResult(feed_url="https://ok.example.com/feed", status="success", publisher_id=pub.id, items_new=3),
            FeedIndexResult(feed_url="https://bad.example.com/feed", status="failed", error="Feed fetch failed"),
        ]
        registry = SourceRegistry.from_dict(
            {"alice": [{"feed_url": "https://ok.example.com/feed"}, {"feed_url": "https://bad.example.com/feed"}]}
        )

        result = index_consumer_sources(repo, registry, "alice")

        self.assertEqual(result.feeds_indexed, 1)
        self.assertEqual(result.items_indexed, 3)
        self.assertEqual(result.publisher_ids, [pub.id])
        self.assertEqual(repo.count_active_subscribers(pub.id), 1)
        self.assertEqual(repo.subscriptions[0].subscriber_key, subscriber_key("alice"))
        self.assertEqual(repo.subscriptions[0].source, SUBSCRIPTION_SOURCE)

        # repeated passes do not duplicate subscriptions
        index_feed.side_effect = None
        index_feed.return_value = FeedIndexResult(feed_url="https://ok.example.com/feed", status="unchanged", publisher_id=pub.id)
        index_consumer_sources(repo, registry, "alice")
        self.assertEqual(repo.count_active_subscribers(pub.id), 1)

    @patch("humansoup.indexing.sources.index_feed_source")
    def test_consumer_pass_survives_a_raising_source(self, index_feed):
        repo = InMemoryRepo()
        pub = repo.upsert_publisher(Publisher(site_url="https://ok.example.com/feed", name="OK", source_kind="feed"))
        index_feed.side_effect = [
            RuntimeError("db hiccup"),
            FeedIndexResult(feed_url="https://ok.example.com/feed", status="success", publisher_id=pub.id, items_new=2),
        ]
        registry = SourceRegistry.from_dict(
            {"alice": [{"feed_url": "https://bad.example.com/feed"}, {"feed_url": "https://ok.example.com/feed"}]}
        )

        result = index_consumer_sources(repo, registry, "alice")

        self.assertEqual(index_feed.call_count, 2)
        self.assertEqual(result.publisher_ids, [pub.id])
        self.assertEqual(result.items_indexed, 2)
        self.assertEqual(repo.count_active_subscribers(pub.id), 1)

    def test_unknown_consumer(self):
        result = index_consumer_sources(InMemoryRepo(), SourceRegistry.demo(), "nobody")
        self.assertEqual(result.feeds_indexed, 0)
        self.assertEqual(result.publisher_ids, [])


if __name__ == "__main__":
    unittest.main()
