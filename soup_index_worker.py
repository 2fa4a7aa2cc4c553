#!/usr/bin/env python3
"""Content indexing worker.

Each cycle:
- re-indexes the publishers due for a crawl (oldest first)
- indexes the configured consumer's feed sources and keeps its subscriptions

Runs once or on a schedule (SOUP_INDEX_MODE).
"""

from __future__ import annotations

import logging
import sys
import time

import schedule

from humansoup.config import Settings
from humansoup.indexing.scheduler import run_scheduled_index
from humansoup.indexing.sources import index_consumer_sources, load_registry
from humansoup.storage.postgres_repo import PostgresRepo
from humansoup.storage.postgres_schema import ensure_postgres_schema

logger = logging.getLogger("soup_index_worker")


def run_once(settings: Settings) -> None:
    ensure_postgres_schema(settings.pg_dsn)
    repo = PostgresRepo(settings.pg_dsn)

    batch = run_scheduled_index(repo, batch_size=settings.index_batch, limit_per_feed=settings.limit_per_feed)
    registry = load_registry(settings.sources_file)
    consumer = index_consumer_sources(repo, registry, settings.consumer, limit_per_feed=settings.limit_per_feed)
    logger.info(
        f"[index] publishers={len(batch.results)} failed={batch.count('failed')} "
        f"feeds={consumer.feeds_indexed} items={consumer.items_indexed}"
    )


def run_scheduled(settings: Settings) -> None:
    run_once(settings)
    schedule.every(settings.index_interval_minutes).minutes.do(run_once, settings)
    logger.info(f"Scheduled index runs every {settings.index_interval_minutes} minutes")
    while True:
        schedule.run_pending()
        time.sleep(5)


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
    if settings.index_mode == "scheduled":
        try:
            run_scheduled(settings)
        except KeyboardInterrupt:
            logger.info("Shutdown requested")
    else:
        run_once(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
