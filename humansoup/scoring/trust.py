"""Publisher trust scoring.

A layered trust gradient (0.0 to 1.0) built only from observable signals:
domain ownership, publishing history, volume, subscribers and platform
verification. Deterministic and side-effect free; the indexers recompute it
from current signals on every crawl.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from humansoup.ingestion.url_utils import host_from_url, is_platform_host


@dataclass(frozen=True)
class TrustSignals:
    has_custom_domain: bool = False
    history_months: int = 0
    post_count: int = 0
    subscriber_count: int = 0
    verified: bool = False
    vouch_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_trust(signals: TrustSignals) -> float:
    score = 0.0

    if signals.has_custom_domain:
        score += 0.15

    if signals.history_months >= 1:
        score += 0.10
    if signals.history_months >= 6:
        score += 0.10
    if signals.history_months >= 12:
        score += 0.10

    if signals.post_count >= 3:
        score += 0.10
    if signals.post_count >= 10:
        score += 0.10

    if signals.subscriber_count >= 5:
        score += 0.10

    if signals.verified:
        score += 0.20

    # vouch_count is recorded but not scored yet
    return max(0.0, min(1.0, round(score, 4)))


def trust_level(score: float) -> str:
    if score >= 0.8:
        return "verified"
    if score >= 0.5:
        return "high"
    if score >= 0.25:
        return "medium"
    if score > 0:
        return "low"
    return "unknown"


def has_custom_domain(url: Optional[str]) -> bool:
    host = host_from_url(url or "")
    if not host or host == "localhost" or host.endswith(".localhost"):
        return False
    return not is_platform_host(host)


def history_months(first_seen_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole 30-day months since the publisher was first seen."""
    if not first_seen_at:
        return 0
    now = now or datetime.now(timezone.utc)
    if first_seen_at.tzinfo is None:
        first_seen_at = first_seen_at.replace(tzinfo=timezone.utc)
    days = (now - first_seen_at).total_seconds() / 86400.0
    return max(0, int(days // 30))
