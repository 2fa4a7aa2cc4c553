"""Behavior/intent inference from a natural-language request.

Plain keyword tables consumed by one generic scorer. Matching is substring
based on the lowercased conversation context (prior turns, then the prompt).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple


MAX_TERMS = 24

STOP_WORDS = {
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "give", "get",
    "how", "i", "im", "in", "into", "is", "it", "latest", "me", "my", "of", "on",
    "or", "that", "the", "this", "to", "up", "with", "you", "your",
}

# Order matters: on a tie the first mode listed wins.
BEHAVIOR_KEYWORDS: Dict[str, List[str]] = {
    "listen": [
        "walk", "walking", "run", "running", "gym", "workout", "commute",
        "driving", "drive", "listen", "listening", "podcast", "audio",
    ],
    "watch": ["watch", "watching", "video", "youtube", "couch", "evening", "tv", "screen"],
    "read": [
        "read", "reading", "article", "articles", "newsletter", "sunday",
        "morning", "relaxing", "learn", "learning", "study",
    ],
}

INTENT_KEYWORDS: Dict[str, List[str]] = {
    "latest": ["latest", "recent", "today", "this week", "new", "news", "update"],
    "learn": ["learn", "learning", "understand", "goal", "skill", "research", "study"],
    "entertainment": ["entertainment", "fun", "laugh", "chill", "relax", "enjoy"],
}

PREFERRED_TYPES: Dict[str, List[str]] = {
    "listen": ["audio", "video", "article"],
    "watch": ["video", "audio", "article"],
    "read": ["article", "audio", "video"],
    "mixed": ["video", "audio", "article"],
}

_TERM_RE = re.compile(r"[a-z0-9]{3,}")


@dataclass(frozen=True)
class InferredContext:
    behavior: str  # listen | watch | read | mixed
    intent: str  # latest | learn | entertainment | general
    preferred_types: List[str] = field(default_factory=list)
    terms: List[str] = field(default_factory=list)


def keyword_score(text: str, keywords: Iterable[str]) -> int:
    return sum(1 for kw in keywords if kw in text)


def best_mode(text: str, table: Dict[str, List[str]], default: str) -> str:
    best, best_score = default, 0
    for mode, keywords in table.items():
        score = keyword_score(text, keywords)
        if score > best_score:
            best, best_score = mode, score
    return best


def extract_terms(text: str) -> List[str]:
    terms: List[str] = []
    for token in _TERM_RE.findall(text.lower()):
        if token in STOP_WORDS or token in terms:
            continue
        terms.append(token)
        if len(terms) >= MAX_TERMS:
            break
    return terms


def _turn_text(turn) -> str:
    if isinstance(turn, dict):
        return str(turn.get("content") or "")
    if isinstance(turn, (tuple, list)) and len(turn) == 2:
        return str(turn[1] or "")
    return str(turn or "")


def context_text(prompt: str, prior_turns: Sequence = ()) -> str:
    prior = " ".join(_turn_text(t) for t in prior_turns)
    return f"{prior} {prompt or ''}".lower().strip()


def infer_context(prompt: str, prior_turns: Sequence = ()) -> InferredContext:
    """Infer behavior, intent, preferred types and match terms.

    `prior_turns` may hold plain strings, {"role", "content"} dicts or
    (role, content) pairs.
    """
    text = context_text(prompt, prior_turns)
    behavior = best_mode(text, BEHAVIOR_KEYWORDS, "mixed")
    intent = best_mode(text, INTENT_KEYWORDS, "general")
    return InferredContext(
        behavior=behavior,
        intent=intent,
        preferred_types=list(PREFERRED_TYPES[behavior]),
        terms=extract_terms(text),
    )


def intent_weights(intent: str) -> Tuple[float, float, float]:
    """(type, relevance, freshness) weights."""
    if intent == "latest":
        return 0.25, 0.35, 0.40
    if intent == "learn":
        return 0.30, 0.50, 0.20
    if intent == "entertainment":
        return 0.45, 0.35, 0.20
    return 0.35, 0.40, 0.25
