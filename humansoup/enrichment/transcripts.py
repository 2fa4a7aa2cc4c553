"""Caption transcripts for stored video items.

Best effort and out-of-band: every failure (network, HTTP status, malformed
XML, empty captions) yields None and never touches the indexing pipeline.
Caption XML is parsed with ElementTree.
"""

from __future__ import annotations

import html
import logging
import re
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import requests

from humansoup.storage.base_repo import BaseRepo

logger = logging.getLogger(__name__)

TIMEDTEXT_URL = "https://www.youtube.com/api/timedtext"
MAX_TRANSCRIPT_CHARS = 50_000
DEFAULT_TIMEOUT_MS = 8000

TRANSCRIPT_HEADERS = {
    "Accept": "application/xml,text/xml",
    "User-Agent": "HumanSoup/0.1 (transcript fetcher)",
}

_VIDEO_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")
_WS_RE = re.compile(r"\s+")
_WATCH_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com"}


@dataclass(frozen=True)
class Transcript:
    language: str
    text: str


@dataclass(frozen=True)
class CaptionTrack:
    lang_code: str
    kind: Optional[str] = None
    name: Optional[str] = None

    @property
    def score(self) -> int:
        lang = self.lang_code.lower()
        english = lang == "en" or lang.startswith("en-")
        auto = (self.kind or "").lower() == "asr"
        if english:
            return 90 if auto else 100
        return 60 if auto else 70


def extract_canonical_media_id(value: Optional[str]) -> Optional[str]:
    """Video id from a bare id, a watch/shorts URL or a short link."""
    if not value:
        return None
    s = value.strip()
    if not s:
        return None
    if _VIDEO_ID_RE.match(s):
        return s
    try:
        p = urlparse(s)
        host = (p.hostname or "").lower()
    except ValueError:
        return None

    parts = [seg for seg in (p.path or "").split("/") if seg]
    if host in _WATCH_HOSTS:
        watch_id = (parse_qs(p.query).get("v") or [None])[0]
        if watch_id and _VIDEO_ID_RE.match(watch_id):
            return watch_id
        if len(parts) >= 2 and parts[0] == "shorts" and _VIDEO_ID_RE.match(parts[1]):
            return parts[1]
    if host == "youtu.be" and parts and _VIDEO_ID_RE.match(parts[0]):
        return parts[0]
    return None


def _fetch_timedtext(params: Dict[str, str], timeout_ms: int) -> Optional[str]:
    try:
        resp = requests.get(TIMEDTEXT_URL, params=params, headers=TRANSCRIPT_HEADERS, timeout=timeout_ms / 1000.0)
    except requests.RequestException as e:
        logger.debug(f"Caption request failed: {e}")
        return None
    if resp.status_code < 200 or resp.status_code >= 300:
        return None
    return resp.text


def _parse_tracks(xml: Optional[str]) -> List[CaptionTrack]:
    if not xml:
        return []
    try:
        root = ET.fromstring(xml)
    except ET.ParseError:
        return []
    tracks = []
    for node in root.iter("track"):
        lang = (node.get("lang_code") or "").strip()
        if lang:
            tracks.append(CaptionTrack(lang_code=lang, kind=node.get("kind") or None, name=node.get("name") or None))
    return tracks


def _parse_text(xml: Optional[str]) -> Optional[str]:
    if not xml:
        return None
    try:
        root = ET.fromstring(xml)
    except ET.ParseError:
        return None
    chunks = []
    for node in root.iter("text"):
        # captions are often entity-encoded twice
        chunk = _WS_RE.sub(" ", html.unescape("".join(node.itertext()))).strip()
        if chunk:
            chunks.append(chunk)
    joined = _WS_RE.sub(" ", " ".join(chunks)).strip()
    if not joined:
        return None
    if len(joined) > MAX_TRANSCRIPT_CHARS:
        return joined[: MAX_TRANSCRIPT_CHARS - 3] + "..."
    return joined


def fetch_transcript(video_id: str, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> Optional[Transcript]:
    if not video_id or not _VIDEO_ID_RE.match(video_id):
        return None

    tracks = _parse_tracks(_fetch_timedtext({"type": "list", "v": video_id}, timeout_ms))
    if tracks:
        # first track wins ties
        best = max(tracks, key=lambda t: t.score)
        params = {"v": video_id, "lang": best.lang_code}
        if best.kind:
            params["kind"] = best.kind
        if best.name:
            params["name"] = best.name
        text = _parse_text(_fetch_timedtext(params, timeout_ms))
        if text:
            return Transcript(language=best.lang_code, text=text)

    text = _parse_text(_fetch_timedtext({"v": video_id, "lang": "en"}, timeout_ms))
    return Transcript(language="en", text=text) if text else None


def enrich_transcripts(
    repo: BaseRepo,
    limit: int = 25,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    sleep_seconds: float = 0.0,
) -> int:
    """Attach transcripts to stored video items that lack one. Returns the count stored."""
    enriched = 0
    items = repo.list_content_missing_transcripts(limit)
    for i, item in enumerate(items):
        video_id = extract_canonical_media_id(item.media_url) or extract_canonical_media_id(item.content_url)
        if not video_id:
            continue
        if i and sleep_seconds > 0:
            time.sleep(sleep_seconds)
        transcript = fetch_transcript(video_id, timeout_ms=timeout_ms)
        if transcript is None:
            logger.info(f"No transcript for {item.slug} ({video_id})")
            continue
        repo.set_transcript(item.id, transcript.text, transcript.language)
        enriched += 1
    logger.info(f"Transcript pass: {enriched}/{len(items)} items enriched")
    return enriched
