"""Profile document contract utilities.

A publisher site exposes a profile document (`/me.json`) describing the
publisher and its posts. This module defines:
- A JSON Schema (for validation of the two required fields)
- Helpers to extract posts and subscription intent in a deterministic way

Only `version` and `name` are required; everything else is optional and read
defensively so one odd post never fails a whole crawl.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator


PROFILE_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["version", "name"],
    "properties": {
        "version": {"type": ["string", "number"], "minLength": 1},
        "name": {"type": "string", "minLength": 1},
    },
    "additionalProperties": True,
}


_VALIDATOR = Draft202012Validator(PROFILE_DOCUMENT_SCHEMA)


def validate_profile_document(payload: Any) -> List[str]:
    """Return a list of human-readable validation errors (empty means valid)."""
    errors = []
    for e in sorted(_VALIDATOR.iter_errors(payload), key=lambda x: list(x.path)):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    return errors


def parse_datetime(dt: Any) -> Optional[datetime]:
    if not dt:
        return None
    if isinstance(dt, datetime):
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    s = str(dt).strip()
    if not s:
        return None
    s = s.replace("Z", "+00:00")
    if " " in s and "T" not in s:
        s = s.replace(" ", "T", 1)
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        return None
    # Normalize naive to UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ProfilePost:
    slug: str
    title: str
    file: Optional[str] = None
    excerpt: Optional[str] = None
    published_at: Optional[datetime] = None
    media_url: Optional[str] = None
    media_duration: Optional[int] = None
    media_thumbnail: Optional[str] = None


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def extract_posts(profile: Dict[str, Any]) -> List[ProfilePost]:
    """Normalize the `posts` array; entries without a slug or title are skipped."""
    posts = profile.get("posts") or []
    out: List[ProfilePost] = []
    if not isinstance(posts, list):
        return out
    for p in posts:
        if not isinstance(p, dict):
            continue
        slug = _opt_str(p.get("slug"))
        title = _opt_str(p.get("title"))
        if not slug or not title:
            continue
        media = p.get("media") if isinstance(p.get("media"), dict) else {}
        duration = media.get("duration")
        try:
            duration = int(duration) if duration is not None else None
        except (TypeError, ValueError):
            duration = None
        out.append(
            ProfilePost(
                slug=slug,
                title=title,
                file=_opt_str(p.get("file")),
                excerpt=_opt_str(p.get("excerpt")),
                published_at=parse_datetime(p.get("publishedAt")),
                media_url=_opt_str(media.get("url")),
                media_duration=duration,
                media_thumbnail=_opt_str(media.get("thumbnail")),
            )
        )
    return out


def profile_text(profile: Dict[str, Any], key: str) -> Optional[str]:
    return _opt_str(profile.get(key))


def profile_handle(profile: Dict[str, Any]) -> str:
    handle = _opt_str(profile.get("handle"))
    if handle:
        return handle
    return "-".join(str(profile.get("name") or "").lower().split())


def subscribe_intent(profile: Dict[str, Any]) -> Dict[str, Any]:
    """Subscription-intent metadata (`intents.subscribe`) with safe defaults."""
    intents = profile.get("intents") if isinstance(profile.get("intents"), dict) else {}
    sub = intents.get("subscribe") if isinstance(intents.get("subscribe"), dict) else {}
    return {
        "enabled": bool(sub.get("enabled")),
        "title": _opt_str(sub.get("title")),
        "description": _opt_str(sub.get("description")),
        "frequency": _opt_str(sub.get("frequency")),
    }


def verification(profile: Dict[str, Any]) -> tuple[bool, Optional[datetime]]:
    ver = profile.get("verification") if isinstance(profile.get("verification"), dict) else {}
    return bool(ver.get("verified")), parse_datetime(ver.get("verifiedAt"))
