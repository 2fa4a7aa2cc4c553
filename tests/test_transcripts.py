import unittest
from unittest.mock import Mock, patch

import requests

from humansoup.enrichment.transcripts import (
    MAX_TRANSCRIPT_CHARS,
    Transcript,
    enrich_transcripts,
    extract_canonical_media_id,
    fetch_transcript,
)
from humansoup.storage.memory_repo import InMemoryRepo
from humansoup.storage.records import ContentItem, Publisher

VIDEO_ID = "dQw4w9WgXcQ"

TRACK_LIST = """<transcript_list>
  <track id="0" lang_code="en" kind="asr" />
  <track id="1" lang_code="en" />
</transcript_list>"""

TRANSCRIPT = """<transcript>
  <text start="0.0" dur="1.0">Hello &amp; welcome</text>
  <text start="1.0" dur="1.0">to   The Human Soup</text>
</transcript>"""


def _response(status=200, text=""):
    return Mock(status_code=status, text=text)


class TestExtractMediaId(unittest.TestCase):
    def test_supported_shapes(self):
        self.assertEqual(extract_canonical_media_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ"), VIDEO_ID)
        self.assertEqual(extract_canonical_media_id("https://m.youtube.com/watch?v=dQw4w9WgXcQ&t=3"), VIDEO_ID)
        self.assertEqual(extract_canonical_media_id("https://youtu.be/dQw4w9WgXcQ"), VIDEO_ID)
        self.assertEqual(extract_canonical_media_id("https://www.youtube.com/shorts/dQw4w9WgXcQ"), VIDEO_ID)
        self.assertEqual(extract_canonical_media_id(" dQw4w9WgXcQ "), VIDEO_ID)

    def test_rejects_others(self):
        self.assertIsNone(extract_canonical_media_id("https://example.com/video"))
        self.assertIsNone(extract_canonical_media_id("not-a-valid-id"))
        self.assertIsNone(extract_canonical_media_id(None))


class TestFetchTranscript(unittest.TestCase):
    @patch("humansoup.enrichment.transcripts.requests.get")
    def test_prefers_manual_english_track(self, get):
        def fake_get(url, params=None, headers=None, timeout=None):
            if params.get("type") == "list":
                return _response(text=TRACK_LIST)
            self.assertNotIn("kind", params)
            return _response(text=TRANSCRIPT)

        get.side_effect = fake_get
        result = fetch_transcript(VIDEO_ID, timeout_ms=100)

        self.assertEqual(result.language, "en")
        self.assertEqual(result.text, "Hello & welcome to The Human Soup")
        self.assertEqual(get.call_count, 2)

    @patch("humansoup.enrichment.transcripts.requests.get")
    def test_falls_back_to_direct_english_request(self, get):
        def fake_get(url, params=None, headers=None, timeout=None):
            if params.get("type") == "list":
                return _response(text="<transcript_list></transcript_list>")
            self.assertEqual(params, {"v": VIDEO_ID, "lang": "en"})
            return _response(text="<transcript><text>Fallback transcript</text></transcript>")

        get.side_effect = fake_get
        result = fetch_transcript(VIDEO_ID)

        self.assertEqual(result.text, "Fallback transcript")
        self.assertEqual(result.language, "en")
        self.assertEqual(get.call_count, 2)

    @patch("humansoup.enrichment.transcripts.requests.get")
    def test_http_errors_return_none(self, get):
        get.return_value = _response(status=404)
        self.assertIsNone(fetch_transcript(VIDEO_ID))

        get.side_effect = requests.ConnectionError("down")
        self.assertIsNone(fetch_transcript(VIDEO_ID))

    @patch("humansoup.enrichment.transcripts.requests.get")
    def test_malformed_xml_and_bad_id(self, get):
        get.return_value = _response(text="<transcript><text>broken")
        self.assertIsNone(fetch_transcript(VIDEO_ID))
        self.assertIsNone(fetch_transcript("short"))

    @patch("humansoup.enrichment.transcripts.requests.get")
    def test_truncates_long_transcripts(self, get):
        body = "<transcript>" + "<text>word</text>" * 15000 + "</transcript>"
        get.side_effect = lambda url, params=None, headers=None, timeout=None: (
            _response(text="<transcript_list/>") if params.get("type") == "list" else _response(text=body)
        )
        result = fetch_transcript(VIDEO_ID)
        self.assertEqual(len(result.text), MAX_TRANSCRIPT_CHARS)
        self.assertTrue(result.text.endswith("..."))


class TestEnrichTranscripts(unittest.TestCase):
    @patch("humansoup.enrichment.transcripts.fetch_transcript")
    def test_stores_transcripts_for_video_items(self, fetch):
        repo = InMemoryRepo()
        pub = repo.upsert_publisher(Publisher(site_url="https://www.youtube.com/feeds/videos.xml?channel_id=X", name="V"))
        repo.insert_content(
            ContentItem(
                publisher_id=pub.id,
                slug="talk",
                title="Talk",
                content_type="video",
                media_url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            )
        )
        repo.insert_content(ContentItem(publisher_id=pub.id, slug="essay", title="Essay", content_url="https://x/essay"))
        repo.insert_content(
            ContentItem(publisher_id=pub.id, slug="other", title="Other", content_type="video", media_url="https://vimeo.com/1")
        )
        fetch.return_value = Transcript(language="en", text="Some words")

        self.assertEqual(enrich_transcripts(repo, limit=10), 1)
        self.assertEqual(fetch.call_count, 1)
        self.assertEqual(repo.get_content(pub.id, "talk").transcript_text, "Some words")
        self.assertEqual(repo.list_content_missing_transcripts(10)[0].slug, "other")


if __name__ == "__main__":
    unittest.main()
