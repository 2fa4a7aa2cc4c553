"""Postgres repository for the content graph.

Lightweight psycopg + SQL, one connection per operation.
"""

from __future__ import annotations

from dataclasses import fields as dc_fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from humansoup.storage.base_repo import BaseRepo
from humansoup.storage.records import Candidate, ContentItem, CrawlLogEntry, Publisher

_PUBLISHER_COLUMNS = [f.name for f in dc_fields(Publisher)]
_CONTENT_COLUMNS = [f.name for f in dc_fields(ContentItem)]
_JSON_COLUMNS = {"content_types", "links", "trust_signals", "topics"}


def _adapt(column: str, value: Any) -> Any:
    return Jsonb(value) if column in _JSON_COLUMNS and value is not None else value


def _publisher_from_row(row: Dict[str, Any]) -> Publisher:
    return Publisher(**{k: row[k] for k in _PUBLISHER_COLUMNS if k in row})


def _content_from_row(row: Dict[str, Any]) -> ContentItem:
    return ContentItem(**{k: row[k] for k in _CONTENT_COLUMNS if k in row})


class PostgresRepo(BaseRepo):
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def _connect(self):
        return psycopg.connect(self.pg_dsn, autocommit=True, row_factory=dict_row)

    def _fetch_publisher(self, where: str, value: Any) -> Optional[Publisher]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT * FROM publishers WHERE {where} = %s", (value,))
                row = cur.fetchone()
        return _publisher_from_row(row) if row else None

    # -----------------------------
    # Publishers
    # -----------------------------
    def get_publisher_by_site_url(self, site_url: str) -> Optional[Publisher]:
        return self._fetch_publisher("site_url", site_url)

    def upsert_publisher(self, publisher: Publisher) -> Publisher:
        columns = [c for c in _PUBLISHER_COLUMNS if not (c == "first_seen_at" and publisher.first_seen_at is None)]
        updates = [c for c in columns if c not in ("id", "site_url", "first_seen_at")]
        query = sql.SQL(
            "INSERT INTO publishers ({cols}) VALUES ({vals}) "
            "ON CONFLICT (site_url) DO UPDATE SET {sets} RETURNING *"
        ).format(
            cols=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            vals=sql.SQL(", ").join(sql.Placeholder(c) for c in columns),
            sets=sql.SQL(", ").join(
                sql.SQL("{c} = EXCLUDED.{c}").format(c=sql.Identifier(c)) for c in updates
            ),
        )
        params = {c: _adapt(c, getattr(publisher, c)) for c in columns}
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        return _publisher_from_row(row)

    def touch_publisher(self, publisher_id: str, indexed_at: datetime) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE publishers SET last_indexed_at = %s WHERE id = %s",
                    (indexed_at, publisher_id),
                )

    def update_publisher_stats(self, publisher_id, *, post_count, last_published_at, trust_score, trust_signals, content_hash=None) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE publishers
                    SET post_count = %s, last_published_at = %s, trust_score = %s, trust_signals = %s,
                        content_hash = COALESCE(%s, content_hash)
                    WHERE id = %s
                    """,
                    (post_count, last_published_at, trust_score, Jsonb(trust_signals), content_hash, publisher_id),
                )

    def list_publishers_for_index(self, limit: int) -> List[Publisher]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT * FROM publishers
                    WHERE soup_enabled = TRUE
                    ORDER BY last_indexed_at ASC NULLS FIRST
                    LIMIT %s
                    """,
                    (max(0, int(limit)),),
                )
                rows = cur.fetchall()
        return [_publisher_from_row(r) for r in rows]

    # -----------------------------
    # Subscriptions
    # -----------------------------
    def count_active_subscribers(self, publisher_id: str) -> int:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT count(*) AS n FROM subscriptions WHERE publisher_id = %s AND unsubscribed_at IS NULL",
                    (publisher_id,),
                )
                row = cur.fetchone()
        return int(row["n"]) if row else 0

    def ensure_subscription(self, subscriber_key: str, publisher_id: str, source: str) -> bool:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO subscriptions (subscriber_key, publisher_id, source)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (subscriber_key, publisher_id) WHERE unsubscribed_at IS NULL DO NOTHING
                    """,
                    (subscriber_key, publisher_id, source),
                )
                return cur.rowcount > 0

    # -----------------------------
    # Content
    # -----------------------------
    def get_content(self, publisher_id: str, slug: str) -> Optional[ContentItem]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT * FROM content_items WHERE publisher_id = %s AND slug = %s",
                    (publisher_id, slug),
                )
                row = cur.fetchone()
        return _content_from_row(row) if row else None

    def insert_content(self, item: ContentItem) -> None:
        query = sql.SQL("INSERT INTO content_items ({cols}) VALUES ({vals})").format(
            cols=sql.SQL(", ").join(sql.Identifier(c) for c in _CONTENT_COLUMNS),
            vals=sql.SQL(", ").join(sql.Placeholder(c) for c in _CONTENT_COLUMNS),
        )
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(query, {c: _adapt(c, getattr(item, c)) for c in _CONTENT_COLUMNS})

    def update_content(self, item_id: str, fields: Dict[str, Any]) -> None:
        cols = [c for c in fields if c in _CONTENT_COLUMNS and c != "id"]
        if not cols:
            return
        query = sql.SQL("UPDATE content_items SET {sets}, updated_at = now() WHERE id = {id}").format(
            sets=sql.SQL(", ").join(
                sql.SQL("{c} = {p}").format(c=sql.Identifier(c), p=sql.Placeholder(c)) for c in cols
            ),
            id=sql.Placeholder("_id"),
        )
        params = {c: _adapt(c, fields[c]) for c in cols}
        params["_id"] = item_id
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)

    def delete_content(self, item_id: str) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM content_items WHERE id = %s", (item_id,))

    def content_stats(self, publisher_id: str) -> Tuple[int, Optional[datetime]]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT count(*) AS n, max(published_at) AS latest FROM content_items WHERE publisher_id = %s",
                    (publisher_id,),
                )
                row = cur.fetchone()
        if not row:
            return 0, None
        return int(row["n"]), row["latest"]

    def list_candidates(self, *, since: Optional[datetime] = None, limit: int = 500) -> List[Candidate]:
        where = ["p.soup_enabled = TRUE"]
        params: List[Any] = []
        if since is not None:
            where.append("(c.published_at IS NULL OR c.published_at >= %s)")
            params.append(since)
        params.append(max(0, int(limit)))
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT c.id, c.title, c.content_type, p.name AS publisher_name, p.handle AS publisher_handle,
                           c.content_url, c.published_at, c.excerpt, c.topics, c.media_url, c.media_thumbnail,
                           c.transcript_text, c.transcript_language
                    FROM content_items c
                    JOIN publishers p ON p.id = c.publisher_id
                    WHERE {' AND '.join(where)}
                    ORDER BY c.published_at DESC NULLS LAST
                    LIMIT %s
                    """,
                    params,
                )
                rows = cur.fetchall()
        return [Candidate(**{**r, "topics": list(r.get("topics") or [])}) for r in rows]

    def list_content_missing_transcripts(self, limit: int) -> List[ContentItem]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT * FROM content_items
                    WHERE content_type = 'video'
                      AND (transcript_text IS NULL OR transcript_text = '')
                      AND (media_url IS NOT NULL OR content_url IS NOT NULL)
                    ORDER BY published_at DESC NULLS LAST
                    LIMIT %s
                    """,
                    (max(0, int(limit)),),
                )
                rows = cur.fetchall()
        return [_content_from_row(r) for r in rows]

    def set_transcript(self, item_id: str, text: str, language: Optional[str]) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE content_items
                    SET transcript_text = %s, transcript_language = %s, updated_at = now()
                    WHERE id = %s
                    """,
                    (text, language, item_id),
                )

    # -----------------------------
    # Crawl log
    # -----------------------------
    def append_crawl_log(self, entry: CrawlLogEntry) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO crawl_log (
                      id, source_url, publisher_id, status, content_hash, posts_found, posts_new,
                      posts_updated, error, duration_ms, crawled_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        entry.id,
                        entry.source_url,
                        entry.publisher_id,
                        entry.status,
                        entry.content_hash,
                        entry.posts_found,
                        entry.posts_new,
                        entry.posts_updated,
                        entry.error,
                        entry.duration_ms,
                        entry.crawled_at,
                    ),
                )
