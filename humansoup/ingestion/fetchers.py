"""Source fetchers for profile documents and RSS/Atom feeds.

The fetchers are stateless: they return the raw document (and a fingerprint
for profiles) and leave change detection to the indexers.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

import requests

from humansoup.contracts.profile_document import validate_profile_document
from humansoup.errors import NetworkError, ParseError, ValidationError
from humansoup.ingestion.content_types import ProfileFetch
from humansoup.ingestion.url_utils import normalize_site_url, stable_hash

logger = logging.getLogger(__name__)

PROFILE_DOCUMENT_PATH = "/me.json"
PROFILE_TIMEOUT = 10
FEED_TIMEOUT = 12

PROFILE_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "HumanSoup/0.1 (content indexer)",
}
FEED_HEADERS = {
    "Accept": "application/rss+xml, application/atom+xml, application/xml",
    "User-Agent": "HumanSoup/0.1 (rss indexer)",
}


def profile_document_url(site_url: str) -> str:
    return normalize_site_url(site_url) + PROFILE_DOCUMENT_PATH


def fetch_profile_document(site_url: str, *, timeout: float = PROFILE_TIMEOUT) -> ProfileFetch:
    """Fetch, parse and validate a publisher's profile document.

    Raises NetworkError, ParseError or ValidationError.
    """
    url = profile_document_url(site_url)
    try:
        resp = requests.get(url, headers=PROFILE_HEADERS, timeout=timeout)
    except requests.RequestException as e:
        raise NetworkError(str(e) or e.__class__.__name__) from e

    if resp.status_code < 200 or resp.status_code >= 300:
        raise NetworkError(f"HTTP {resp.status_code}: {resp.reason or ''}".strip())

    raw = resp.text
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ParseError("Invalid JSON in profile document") from e

    errors = validate_profile_document(data)
    if errors:
        raise ValidationError("Invalid profile document: missing version or name (" + "; ".join(errors) + ")")

    return ProfileFetch(profile=data, raw=raw, hash=stable_hash(raw))


def fetch_feed_document(feed_url: str, *, timeout: float = FEED_TIMEOUT) -> Optional[str]:
    """Fetch a feed body; None (with a warning) on any network failure or non-2xx."""
    try:
        resp = requests.get(feed_url, headers=FEED_HEADERS, timeout=timeout)
    except requests.RequestException as e:
        logger.warning(f"Feed fetch failed: {feed_url} ({e})")
        return None
    if resp.status_code < 200 or resp.status_code >= 300:
        logger.warning(f"Feed fetch failed {resp.status_code}: {feed_url}")
        return None
    return resp.text
