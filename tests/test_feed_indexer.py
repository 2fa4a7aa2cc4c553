import unittest
from unittest.mock import patch

from humansoup.indexing.feed_indexer import (
    build_excerpt,
    build_item_slug,
    derive_handle,
    index_feed_source,
    should_skip_short_form,
)
from humansoup.ingestion.content_types import ParsedFeedItem, SourceDescriptor
from humansoup.ingestion.url_utils import key_hash
from humansoup.storage.memory_repo import InMemoryRepo
from humansoup.storage.records import ContentItem


YT_FEED = "https://www.youtube.com/feeds/videos.xml?channel_id=UC123"
PODCAST_FEED = "https://feeds.example.com/soupcast"

PODCAST_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Soup Cast</title>
    <link>https://soupcast.example.com</link>
    <item>
      <title>Episode 1</title>
      <link>https://soupcast.example.com/ep1</link>
      <guid>ep-1</guid>
      <pubDate>Mon, 06 Jan 2025 10:00:00 GMT</pubDate>
      <description>&lt;p&gt;Founders   talk &lt;b&gt;shop&lt;/b&gt;.&lt;/p&gt;</description>
      <enclosure url="https://cdn.example.com/ep1.mp3" type="audio/mpeg" length="1"/>
    </item>
    <item>
      <title>Episode 2</title>
      <link>https://soupcast.example.com/ep2</link>
      <guid>ep-2</guid>
      <pubDate>Mon, 13 Jan 2025 10:00:00 GMT</pubDate>
      <enclosure url="https://cdn.example.com/ep2.mp3" type="audio/mpeg" length="1"/>
    </item>
  </channel>
</rss>
"""

VIDEO_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Soup Videos</title>
    <item>
      <title>A long talk</title>
      <link>https://www.youtube.com/watch?v=aaaaaaaaaaa</link>
      <guid>vid-long</guid>
    </item>
    <item>
      <title>Quick tip</title>
      <link>https://www.youtube.com/shorts/bbbbbbbbbbb</link>
      <guid>vid-short</guid>
    </item>
  </channel>
</rss>
"""


class FlakyRepo(InMemoryRepo):
    """Fails the first insert of one slug."""

    def __init__(self, fail_slug):
        super().__init__()
        self.fail_slug = fail_slug

    def insert_content(self, item):
        if item.slug == self.fail_slug:
            self.fail_slug = None
            raise RuntimeError("db hiccup")
        super().insert_content(item)


def _item(**kw):
    base = {"id": "x", "title": "A video"}
    base.update(kw)
    return ParsedFeedItem(**base)


class TestShortFormFilter(unittest.TestCase):
    def test_duration_threshold(self):
        self.assertTrue(should_skip_short_form(YT_FEED, _item(duration_seconds=45)))
        self.assertFalse(should_skip_short_form(YT_FEED, _item(duration_seconds=900)))
        self.assertFalse(should_skip_short_form(YT_FEED, _item(duration_seconds=0)))

    def test_markers(self):
        self.assertTrue(should_skip_short_form(YT_FEED, _item(title="Tiny clip #Shorts")))
        self.assertTrue(should_skip_short_form(YT_FEED, _item(link="https://www.youtube.com/shorts/abc")))
        self.assertTrue(should_skip_short_form(YT_FEED, _item(link="https://m.youtube.com/shorts/abc")))

    def test_only_video_platform_feeds(self):
        item = _item(title="clip #shorts", duration_seconds=30)
        self.assertFalse(should_skip_short_form(PODCAST_FEED, item))


class TestFeedHelpers(unittest.TestCase):
    def test_item_slug_is_deterministic(self):
        slug = build_item_slug("ep-1", "Episode 1", "https://x/ep1")
        self.assertEqual(slug, "episode-1-" + key_hash("ep-1")[:8])
        self.assertEqual(slug, build_item_slug("ep-1", "Episode 1", "https://x/other"))

    def test_item_slug_seed_fallbacks(self):
        self.assertTrue(build_item_slug(None, None, None).startswith("item-"))
        self.assertEqual(build_item_slug(None, "!!!", None), "item-" + key_hash("!!!")[:8])

    def test_handle(self):
        self.assertEqual(derive_handle("Soup Cast", PODCAST_FEED), "soup-cast-" + key_hash(PODCAST_FEED)[:6])
        self.assertTrue(derive_handle("", PODCAST_FEED).startswith("feeds-example-com-"))

    def test_excerpt(self):
        self.assertEqual(build_excerpt("<p>Hi   <b>there</b></p>"), "Hi there")
        long = build_excerpt("word " * 100)
        self.assertEqual(len(long), 220)
        self.assertTrue(long.endswith("..."))
        self.assertIsNone(build_excerpt("<br/>"))


class TestIndexFeedSource(unittest.TestCase):
    def setUp(self):
        self.repo = InMemoryRepo()
        self.podcast = SourceDescriptor(feed_url=PODCAST_FEED, source_type="audio")

    @patch("humansoup.indexing.feed_indexer.fetch_feed_document")
    def test_indexes_audio_feed(self, fetch):
        fetch.return_value = PODCAST_XML
        result = index_feed_source(self.repo, self.podcast)

        self.assertEqual(result.status, "success")
        self.assertEqual(result.items_new, 2)
        pub = self.repo.get_publisher_by_site_url(PODCAST_FEED)
        self.assertEqual(pub.source_kind, "feed")
        self.assertEqual(pub.bio, "Imported from RSS")
        self.assertEqual(pub.content_types, ["audio"])
        self.assertEqual(pub.links["rss"], PODCAST_FEED)
        self.assertEqual(pub.links["website"], "https://soupcast.example.com")
        self.assertEqual(pub.post_count, 2)

        item = self.repo.get_content(pub.id, build_item_slug("ep-1", "Episode 1", None))
        self.assertEqual(item.media_url, "https://cdn.example.com/ep1.mp3")
        self.assertEqual(item.content_url, "https://soupcast.example.com/ep1")
        self.assertTrue(item.excerpt.startswith("Founders talk shop"))

    @patch("humansoup.indexing.feed_indexer.fetch_feed_document")
    def test_second_crawl_is_unchanged(self, fetch):
        fetch.return_value = PODCAST_XML
        index_feed_source(self.repo, self.podcast)
        writes = self.repo.content_writes

        result = index_feed_source(self.repo, self.podcast)

        self.assertEqual(result.status, "unchanged")
        self.assertEqual(result.items_indexed, 0)
        self.assertEqual(self.repo.content_writes, writes)
        self.assertEqual([e.status for e in self.repo.crawl_log], ["success", "unchanged"])

    @patch("humansoup.indexing.feed_indexer.fetch_feed_document")
    def test_handle_is_kept_and_items_updated(self, fetch):
        fetch.return_value = PODCAST_XML
        index_feed_source(self.repo, self.podcast)
        handle = self.repo.get_publisher_by_site_url(PODCAST_FEED).handle

        fetch.return_value = PODCAST_XML.replace("<title>Soup Cast</title>", "<title>Soup Cast Renamed</title>").replace(
            "ep2.mp3", "ep2-remastered.mp3"
        )
        result = index_feed_source(self.repo, self.podcast)

        self.assertEqual(result.status, "success")
        self.assertEqual(result.items_new, 0)
        self.assertEqual(result.items_updated, 1)
        pub = self.repo.get_publisher_by_site_url(PODCAST_FEED)
        self.assertEqual(pub.handle, handle)
        self.assertEqual(len(self.repo.publishers), 1)

    @patch("humansoup.indexing.feed_indexer.fetch_feed_document")
    def test_limit_per_feed(self, fetch):
        fetch.return_value = PODCAST_XML
        result = index_feed_source(self.repo, self.podcast, limit_per_feed=1)
        self.assertEqual(result.items_new, 1)

    @patch("humansoup.indexing.feed_indexer.fetch_feed_document")
    def test_short_videos_are_skipped_and_removed(self, fetch):
        fetch.return_value = VIDEO_XML
        descriptor = SourceDescriptor(feed_url=YT_FEED, source_type="video")
        index_feed_source(self.repo, descriptor)
        pub = self.repo.get_publisher_by_site_url(YT_FEED)

        # a short that was stored before the filter applied
        short_slug = build_item_slug("vid-short", "Quick tip", None)
        self.repo.insert_content(ContentItem(publisher_id=pub.id, slug=short_slug, title="Quick tip", content_type="video"))
        fetch.return_value = VIDEO_XML.replace("<guid>vid-long</guid>", "<guid>vid-long</guid><description>Now with notes</description>")
        result = index_feed_source(self.repo, descriptor)

        self.assertEqual(result.items_skipped, 1)
        self.assertIsNone(self.repo.get_content(pub.id, short_slug))
        long_item = self.repo.get_content(pub.id, build_item_slug("vid-long", "A long talk", None))
        self.assertEqual(long_item.media_url, "https://www.youtube.com/watch?v=aaaaaaaaaaa")

    @patch("humansoup.indexing.feed_indexer.fetch_feed_document")
    def test_storage_failure_is_logged_and_retried(self, fetch):
        fetch.return_value = PODCAST_XML
        ep2 = build_item_slug("ep-2", "Episode 2", None)
        repo = FlakyRepo(fail_slug=ep2)

        result = index_feed_source(repo, self.podcast)

        self.assertEqual(result.status, "failed")
        pub = repo.get_publisher_by_site_url(PODCAST_FEED)
        self.assertIsNone(pub.content_hash)
        self.assertEqual([e.status for e in repo.crawl_log], ["failed"])
        self.assertEqual(repo.crawl_log[0].publisher_id, pub.id)
        self.assertEqual(repo.crawl_log[0].error, "db hiccup")

        result = index_feed_source(repo, self.podcast)

        self.assertEqual(result.status, "success")
        self.assertEqual(result.items_new, 1)
        self.assertIsNotNone(repo.get_content(pub.id, ep2))
        self.assertEqual(repo.get_publisher_by_site_url(PODCAST_FEED).post_count, 2)
        self.assertEqual(index_feed_source(repo, self.podcast).status, "unchanged")

    @patch("humansoup.indexing.feed_indexer.fetch_feed_document")
    def test_failures_are_recorded(self, fetch):
        fetch.return_value = None
        result = index_feed_source(self.repo, self.podcast)
        self.assertEqual(result.status, "failed")

        fetch.return_value = "<html>nope</html>"
        result = index_feed_source(self.repo, self.podcast)
        self.assertEqual(result.status, "failed")
        self.assertEqual([e.status for e in self.repo.crawl_log], ["failed", "failed"])
        self.assertEqual(len(self.repo.publishers), 0)


if __name__ == "__main__":
    unittest.main()
