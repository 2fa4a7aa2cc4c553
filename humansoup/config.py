"""Runtime configuration for the workers, loaded from the environment (.env supported)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_PG_DSN = "dbname=humansoup user=soup password=souppass host=localhost port=5432"
INDEX_MODES = ("once", "scheduled")


@dataclass
class Settings:
    pg_dsn: str = DEFAULT_PG_DSN
    index_batch: int = 50
    limit_per_feed: int = 20
    consumer: str = "demo"
    sources_file: Optional[str] = None
    index_mode: str = "once"
    index_interval_minutes: int = 30
    transcript_batch: int = 25
    transcript_timeout_ms: int = 8000
    transcript_sleep: float = 0.5
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load and validate settings from environment variables"""
        load_dotenv()
        settings = cls(
            pg_dsn=os.getenv("PG_DSN", DEFAULT_PG_DSN),
            index_batch=int(os.getenv("SOUP_INDEX_BATCH", "50")),
            limit_per_feed=int(os.getenv("SOUP_LIMIT_PER_FEED", "20")),
            consumer=os.getenv("SOUP_CONSUMER", "demo").strip(),
            sources_file=os.getenv("SOUP_SOURCES_FILE", "").strip() or None,
            index_mode=os.getenv("SOUP_INDEX_MODE", "once").strip().lower(),
            index_interval_minutes=int(os.getenv("SOUP_INDEX_INTERVAL_MINUTES", "30")),
            transcript_batch=int(os.getenv("SOUP_TRANSCRIPT_BATCH", "25")),
            transcript_timeout_ms=int(os.getenv("SOUP_TRANSCRIPT_TIMEOUT_MS", "8000")),
            transcript_sleep=float(os.getenv("SOUP_TRANSCRIPT_SLEEP", "0.5")),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )
        settings._validate()
        return settings

    def _validate(self):
        errors = []
        if not self.pg_dsn:
            errors.append("PG_DSN is required")
        if self.index_batch < 1:
            errors.append("SOUP_INDEX_BATCH must be at least 1")
        if self.limit_per_feed < 1:
            errors.append("SOUP_LIMIT_PER_FEED must be at least 1")
        if not self.consumer:
            errors.append("SOUP_CONSUMER must not be empty")
        if self.sources_file and not os.path.isfile(self.sources_file):
            errors.append(f"SOUP_SOURCES_FILE not found: {self.sources_file}")
        if self.index_mode not in INDEX_MODES:
            errors.append(f"SOUP_INDEX_MODE must be one of {', '.join(INDEX_MODES)}")
        if self.index_interval_minutes < 1:
            errors.append("SOUP_INDEX_INTERVAL_MINUTES must be at least 1")
        if self.transcript_batch < 1:
            errors.append("SOUP_TRANSCRIPT_BATCH must be at least 1")
        if self.transcript_timeout_ms < 100:
            errors.append("SOUP_TRANSCRIPT_TIMEOUT_MS must be at least 100")
        if self.transcript_sleep < 0:
            errors.append("SOUP_TRANSCRIPT_SLEEP must not be negative")
        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors))
