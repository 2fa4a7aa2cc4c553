import unittest

from humansoup.ingestion.url_utils import (
    build_content_url,
    host_from_url,
    is_likely_image_url,
    is_platform_host,
    is_video_feed_url,
    key_hash,
    normalize_site_url,
    slugify,
)


class TestUrlUtils(unittest.TestCase):
    def test_normalize_adds_scheme_and_strips_slashes(self):
        self.assertEqual(normalize_site_url("alice.example.com//"), "https://alice.example.com")
        self.assertEqual(normalize_site_url("http://bob.me3.app/"), "http://bob.me3.app")

    def test_content_url(self):
        self.assertEqual(build_content_url("alice.example.com/", "hello"), "https://alice.example.com/blog/hello")

    def test_host_and_platform(self):
        self.assertEqual(host_from_url("https://www.YouTube.com/feeds/videos.xml"), "youtube.com")
        self.assertTrue(is_platform_host("someone.substack.com"))
        self.assertFalse(is_platform_host("example.com"))

    def test_video_feed_detection(self):
        self.assertTrue(is_video_feed_url("https://www.youtube.com/feeds/videos.xml?channel_id=abc"))
        self.assertFalse(is_video_feed_url("https://feeds.megaphone.fm/show"))
        self.assertFalse(is_video_feed_url("https://m.youtube.com/feeds/videos.xml"))

    def test_image_urls(self):
        self.assertTrue(is_likely_image_url("https://cdn.example.com/a/cover.JPG"))
        self.assertFalse(is_likely_image_url("https://cdn.example.com/episode.mp3"))
        self.assertFalse(is_likely_image_url(None))

    def test_slugify_and_key_hash(self):
        self.assertEqual(slugify("  Hello, World! 2025 "), "hello-world-2025")
        self.assertEqual(len(slugify("x" * 100)), 48)
        self.assertEqual(slugify("a" * 47 + " b"), "a" * 47)
        self.assertEqual(key_hash(" Feed "), key_hash("feed"))


if __name__ == "__main__":
    unittest.main()
