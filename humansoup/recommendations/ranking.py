"""Context-aware ranking over stored candidates.

Pure functions: no storage access and no clock reads beyond the optional
`now` default. Passing `now` makes results fully deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from humansoup.recommendations.context import InferredContext, infer_context, intent_weights
from humansoup.storage.records import Candidate


KEYWORDS_TO_SHOW = 3
TYPE_SCORES = (1.0, 0.72, 0.48)
UNPREFERRED_TYPE_SCORE = 0.32
NO_TERMS_RELEVANCE = 0.35
LEARN_TRANSCRIPT_BONUS = 0.03
TRANSCRIPT_CORPUS_CHARS = 800


@dataclass(frozen=True)
class Recommendation:
    id: str
    title: str
    publisher_name: str
    publisher_handle: Optional[str]
    content_type: str
    url: str
    published_at: Optional[datetime]
    excerpt: Optional[str]
    media_url: Optional[str]
    media_thumbnail: Optional[str]
    why: str
    score: float
    is_fresh: bool
    keywords: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Coverage:
    window_days: int
    total_matches: int
    recent_matches: int
    thin: bool


@dataclass(frozen=True)
class ServeMode:
    behavior: str
    intent: str
    preferred_types: List[str]


@dataclass(frozen=True)
class ServeResult:
    summary: str
    recommendations: List[Recommendation]
    mode: ServeMode
    coverage: Coverage
    needs_refresh: bool


# -----------------------------
# Scoring parts
# -----------------------------
def normalize_type(raw: Optional[str]) -> str:
    value = (raw or "").strip().lower()
    if value in ("note", "link", "image"):
        return "article"
    return value or "article"


def type_score(content_type: str, preferred: Sequence[str]) -> float:
    if content_type in preferred:
        idx = list(preferred).index(content_type)
        if idx < len(TYPE_SCORES):
            return TYPE_SCORES[idx]
    return UNPREFERRED_TYPE_SCORE


def freshness_score(published_at: Optional[datetime], window_days: int, now: datetime) -> Tuple[float, bool]:
    if published_at is None:
        return 0.2, False
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    age_days = max(0.0, (now - published_at).total_seconds() / 86400.0)
    if age_days <= window_days:
        return max(0.65, 1 - (age_days / max(1, window_days)) * 0.35), True
    decay = (age_days - window_days) / max(1, window_days * 3)
    return max(0.05, 0.65 - decay), False


def type_reason(content_type: str, behavior: str) -> str:
    if behavior == "listen" and content_type == "audio":
        return "audio-first fit for listening"
    if behavior == "watch" and content_type == "video":
        return "video-first fit for watching"
    if behavior == "read" and content_type == "article":
        return "article-first fit for reading"
    return f"good {content_type} format match"


def _corpus(item: Candidate) -> str:
    parts = [
        item.title or "",
        item.excerpt or "",
        item.publisher_name or "",
        " ".join(item.topics or []),
        (item.transcript_text or "")[:TRANSCRIPT_CORPUS_CHARS],
    ]
    return " ".join(parts).lower()


def score_candidate(
    item: Candidate,
    context: InferredContext,
    window_days: int,
    now: datetime,
) -> Optional[Recommendation]:
    """Score one candidate; None when it has no URL or matches none of the terms."""
    url = (item.content_url or "").strip() or (item.media_url or "").strip()
    if not url:
        return None

    content_type = normalize_type(item.content_type)
    corpus = _corpus(item)
    matches = [t for t in context.terms if t in corpus]
    if context.terms and not matches:
        return None
    if context.terms:
        relevance = min(1.0, len(matches) / min(8, len(context.terms)))
    else:
        relevance = NO_TERMS_RELEVANCE

    freshness, is_fresh = freshness_score(item.published_at, window_days, now)
    w_type, w_rel, w_fresh = intent_weights(context.intent)
    score = type_score(content_type, context.preferred_types) * w_type + relevance * w_rel + freshness * w_fresh
    if context.intent == "learn" and item.transcript_text:
        score += LEARN_TRANSCRIPT_BONUS

    keywords = matches[:KEYWORDS_TO_SHOW]
    reasons = [type_reason(content_type, context.behavior)]
    if keywords:
        reasons.append(f"matched {', '.join(keywords)}")
    reasons.append(f"published in the last {window_days} days" if is_fresh else "older but still relevant")

    return Recommendation(
        id=item.id,
        title=item.title,
        publisher_name=item.publisher_name,
        publisher_handle=item.publisher_handle,
        content_type=content_type,
        url=url,
        published_at=item.published_at,
        excerpt=item.excerpt,
        media_url=item.media_url,
        media_thumbnail=item.media_thumbnail,
        why=" · ".join(reasons[:2]),
        score=round(score, 4),
        is_fresh=is_fresh,
        keywords=keywords,
    )


def _scored_unique(
    items: Sequence[Candidate],
    context: InferredContext,
    window_days: int,
    now: datetime,
) -> List[Recommendation]:
    scored = [r for r in (score_candidate(i, context, window_days, now) for i in items) if r is not None]
    # stable: equal scores keep input order
    scored.sort(key=lambda r: r.score, reverse=True)
    seen = set()
    unique: List[Recommendation] = []
    for rec in scored:
        if rec.url in seen:
            continue
        seen.add(rec.url)
        unique.append(rec)
    return unique


def rank_candidates(
    items: Sequence[Candidate],
    context: InferredContext,
    window_days: int,
    limit: int = 3,
    now: Optional[datetime] = None,
) -> List[Recommendation]:
    now = now or datetime.now(timezone.utc)
    return _scored_unique(items, context, window_days, now)[: max(3, limit)]


# -----------------------------
# Serve
# -----------------------------
def _tone(intent: str) -> str:
    return {
        "latest": "latest",
        "learn": "learning-focused",
        "entertainment": "entertainment-focused",
    }.get(intent, "focused")


def build_summary(
    prompt: str,
    recommendations: Sequence[Recommendation],
    context: InferredContext,
    window_days: int,
    refreshed: bool,
    needs_refresh: bool,
) -> str:
    if not recommendations:
        if needs_refresh:
            return (
                f'I could not find strong matches for "{prompt}" yet. '
                "I am simmering your sources now and will update with fresher results."
            )
        return f'I could not find strong matches for "{prompt}" in your soup right now.'

    lead = recommendations[0]
    secondary_titles = [r.title for r in recommendations[1:3]]
    secondary = " | ".join(secondary_titles) if secondary_titles else "no additional strong matches yet"
    if refreshed:
        note = " Refreshed with newly ingested content."
    elif needs_refresh:
        note = " I am simmering for newer matches in parallel."
    else:
        note = ""
    return (
        f"Here is a concise {_tone(context.intent)} pass for the last {window_days} days: "
        f'start with "{lead.title}" from {lead.publisher_name}. Next best: {secondary}.{note}'
    )


def serve_recommendations(
    prompt: str,
    items: Sequence[Candidate],
    days: int,
    limit: int,
    prior_turns: Sequence = (),
    refreshed: bool = False,
    now: Optional[datetime] = None,
) -> ServeResult:
    now = now or datetime.now(timezone.utc)
    context = infer_context(prompt, prior_turns)
    unique = _scored_unique(items, context, days, now)
    recommendations = unique[: max(3, limit)]

    recent = sum(1 for r in unique if r.is_fresh)
    thin = len(recommendations) < 3
    needs_refresh = not (refreshed and not thin and recent >= 3)

    return ServeResult(
        summary=build_summary(prompt, recommendations, context, days, refreshed, needs_refresh),
        recommendations=recommendations,
        mode=ServeMode(behavior=context.behavior, intent=context.intent, preferred_types=context.preferred_types),
        coverage=Coverage(window_days=days, total_matches=len(unique), recent_matches=recent, thin=thin),
        needs_refresh=needs_refresh,
    )
