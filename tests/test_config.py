import os
import unittest
from unittest.mock import patch

from humansoup.config import Settings


class TestSettings(unittest.TestCase):
    @patch("humansoup.config.load_dotenv")
    def test_defaults(self, _load):
        with patch.dict(os.environ, {}, clear=True):
            s = Settings.from_env()
        self.assertEqual(s.index_batch, 50)
        self.assertEqual(s.limit_per_feed, 20)
        self.assertEqual(s.consumer, "demo")
        self.assertEqual(s.index_mode, "once")
        self.assertEqual(s.transcript_timeout_ms, 8000)
        self.assertIsNone(s.sources_file)

    @patch("humansoup.config.load_dotenv")
    def test_overrides(self, _load):
        env = {"SOUP_INDEX_BATCH": "5", "SOUP_INDEX_MODE": "Scheduled", "SOUP_CONSUMER": "alice", "LOG_LEVEL": "debug"}
        with patch.dict(os.environ, env, clear=True):
            s = Settings.from_env()
        self.assertEqual((s.index_batch, s.index_mode, s.consumer, s.log_level), (5, "scheduled", "alice", "DEBUG"))

    @patch("humansoup.config.load_dotenv")
    def test_invalid_values_are_collected(self, _load):
        env = {"SOUP_INDEX_MODE": "sometimes", "SOUP_INDEX_BATCH": "0"}
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(ValueError) as ctx:
                Settings.from_env()
        self.assertIn("SOUP_INDEX_MODE", str(ctx.exception))
        self.assertIn("SOUP_INDEX_BATCH", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
