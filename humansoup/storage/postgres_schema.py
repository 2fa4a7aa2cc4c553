"""Postgres schema management for the content graph.

Schema creation is idempotent (CREATE IF NOT EXISTS) and runs at worker start.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg


SCHEMA_STATEMENTS: list[str] = [
    # Publishers (profile sites and feeds)
    """
    CREATE TABLE IF NOT EXISTS publishers (
      id TEXT PRIMARY KEY,
      site_url TEXT UNIQUE NOT NULL,
      source_kind TEXT NOT NULL DEFAULT 'profile',
      handle TEXT,
      name TEXT NOT NULL,
      bio TEXT,
      location TEXT,
      avatar TEXT,
      banner TEXT,
      content_hash TEXT,
      content_types JSONB NOT NULL DEFAULT '[]'::jsonb,
      links JSONB NOT NULL DEFAULT '{}'::jsonb,
      subscribe_enabled BOOLEAN NOT NULL DEFAULT FALSE,
      subscribe_title TEXT,
      subscribe_description TEXT,
      subscribe_frequency TEXT,
      post_count INTEGER NOT NULL DEFAULT 0,
      last_published_at TIMESTAMPTZ,
      trust_score REAL NOT NULL DEFAULT 0.0,
      trust_signals JSONB NOT NULL DEFAULT '{}'::jsonb,
      verified BOOLEAN NOT NULL DEFAULT FALSE,
      verified_at TIMESTAMPTZ,
      soup_enabled BOOLEAN NOT NULL DEFAULT TRUE,
      first_seen_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      last_indexed_at TIMESTAMPTZ
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_publishers_index_order ON publishers (soup_enabled, last_indexed_at ASC NULLS FIRST);",
    # Content items
    """
    CREATE TABLE IF NOT EXISTS content_items (
      id TEXT PRIMARY KEY,
      publisher_id TEXT NOT NULL REFERENCES publishers(id) ON DELETE CASCADE,
      slug TEXT NOT NULL,
      title TEXT NOT NULL,
      excerpt TEXT,
      content_type TEXT NOT NULL DEFAULT 'article',
      content_url TEXT,
      file_path TEXT,
      media_url TEXT,
      media_duration INTEGER,
      media_thumbnail TEXT,
      published_at TIMESTAMPTZ,
      topics JSONB NOT NULL DEFAULT '[]'::jsonb,
      transcript_text TEXT,
      transcript_language TEXT,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      UNIQUE (publisher_id, slug)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_content_items_published_at ON content_items (published_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_content_items_type ON content_items (content_type);",
    # Crawl log (append-only)
    """
    CREATE TABLE IF NOT EXISTS crawl_log (
      id TEXT PRIMARY KEY,
      source_url TEXT NOT NULL,
      publisher_id TEXT REFERENCES publishers(id) ON DELETE SET NULL,
      status TEXT NOT NULL, -- success|unchanged|failed
      content_hash TEXT,
      posts_found INTEGER NOT NULL DEFAULT 0,
      posts_new INTEGER NOT NULL DEFAULT 0,
      posts_updated INTEGER NOT NULL DEFAULT 0,
      error TEXT,
      duration_ms INTEGER NOT NULL DEFAULT 0,
      crawled_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_crawl_log_crawled_at ON crawl_log (crawled_at DESC);",
    # Subscriptions
    """
    CREATE TABLE IF NOT EXISTS subscriptions (
      id BIGSERIAL PRIMARY KEY,
      subscriber_key TEXT NOT NULL,
      publisher_id TEXT NOT NULL REFERENCES publishers(id) ON DELETE CASCADE,
      source TEXT,
      subscribed_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      unsubscribed_at TIMESTAMPTZ
    );
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_subscriptions_active ON subscriptions (subscriber_key, publisher_id) WHERE unsubscribed_at IS NULL;",
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
