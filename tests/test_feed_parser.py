import unittest
from datetime import datetime, timezone

from humansoup.errors import UnsupportedFormatError
from humansoup.ingestion.feed_parser import parse_duration_seconds, parse_feed


RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd"
     xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Soup Cast</title>
    <link>https://soupcast.example.com</link>
    <item>
      <title>Episode 1: Starting a company</title>
      <link>https://soupcast.example.com/ep1</link>
      <guid>ep-1</guid>
      <pubDate>Mon, 06 Jan 2025 10:00:00 GMT</pubDate>
      <description>&lt;p&gt;Founders talk shop.&lt;/p&gt;</description>
      <enclosure url="https://cdn.example.com/ep1.mp3" type="audio/mpeg" length="1234"/>
      <itunes:duration>02:15</itunes:duration>
      <media:thumbnail url="https://cdn.example.com/ep1.jpg"/>
    </item>
    <item>
      <link>https://soupcast.example.com/ep2</link>
    </item>
  </channel>
</rss>
"""

ATOM = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Notes</title>
  <link href="https://notes.example.com/" rel="alternate"/>
  <updated>2025-01-05T12:00:00Z</updated>
  <id>urn:notes</id>
  <entry>
    <title>Writing in public</title>
    <id>urn:notes:1</id>
    <link href="https://notes.example.com/1" rel="alternate"/>
    <updated>2025-01-05T12:00:00Z</updated>
    <summary>Short essay on writing.</summary>
  </entry>
</feed>
"""


class TestFeedParser(unittest.TestCase):
    def test_rss_item_fields(self):
        feed = parse_feed(RSS)
        self.assertEqual(feed.kind, "rss")
        self.assertEqual(feed.title, "Soup Cast")
        self.assertEqual(len(feed.items), 2)

        first = feed.items[0]
        self.assertEqual(first.id, "ep-1")
        self.assertEqual(first.link, "https://soupcast.example.com/ep1")
        self.assertEqual(first.enclosure_url, "https://cdn.example.com/ep1.mp3")
        self.assertEqual(first.duration_seconds, 135)
        self.assertEqual(first.thumbnail, "https://cdn.example.com/ep1.jpg")
        self.assertIn("Founders talk shop.", first.description)
        self.assertEqual(first.published_at, datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc))

    def test_rss_item_defaults(self):
        second = parse_feed(RSS).items[1]
        self.assertEqual(second.title, "Untitled")
        self.assertEqual(second.id, "https://soupcast.example.com/ep2")
        self.assertIsNone(second.duration_seconds)
        self.assertIsNone(second.published_at)

    def test_atom_entry(self):
        feed = parse_feed(ATOM)
        self.assertEqual(feed.kind, "atom")
        self.assertEqual(feed.title, "Atom Notes")
        entry = feed.items[0]
        self.assertEqual(entry.link, "https://notes.example.com/1")
        self.assertEqual(entry.description, "Short essay on writing.")
        self.assertEqual(entry.id, "urn:notes:1")

    def test_rejects_non_feed(self):
        with self.assertRaises(UnsupportedFormatError):
            parse_feed("<html><body>not a feed</body></html>")

    def test_duration_formats(self):
        self.assertEqual(parse_duration_seconds("02:15"), 135)
        self.assertEqual(parse_duration_seconds("1:00:05"), 3605)
        self.assertEqual(parse_duration_seconds("45"), 45)
        self.assertIsNone(parse_duration_seconds("about an hour"))
        self.assertIsNone(parse_duration_seconds(""))


if __name__ == "__main__":
    unittest.main()
