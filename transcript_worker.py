#!/usr/bin/env python3
"""Transcript enrichment worker.

One pass over stored video items that have no transcript yet. Best effort:
items without captions are left as they are and retried on the next pass.
"""

from __future__ import annotations

import logging
import sys

from humansoup.config import Settings
from humansoup.enrichment.transcripts import enrich_transcripts
from humansoup.storage.postgres_repo import PostgresRepo
from humansoup.storage.postgres_schema import ensure_postgres_schema

logger = logging.getLogger("transcript_worker")


def main() -> int:
    try:
        settings = Settings.from_env()
    except ValueError as e:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        logger.error(f"Configuration error:\n{e}")
        return 1
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    ensure_postgres_schema(settings.pg_dsn)
    repo = PostgresRepo(settings.pg_dsn)
    enriched = enrich_transcripts(
        repo,
        limit=settings.transcript_batch,
        timeout_ms=settings.transcript_timeout_ms,
        sleep_seconds=settings.transcript_sleep,
    )
    logger.info(f"[transcripts] enriched={enriched}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
