"""Keyword topic tagging for content items.

Simple, explainable prefix matching over title + excerpt: a keyword matches
at the start of a word, so "founder" also tags "founders". Tags feed the
recommendation corpus; they are not a taxonomy.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional


MAX_TOPICS = 5

TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "ai": ["ai", "artificial intelligence", "machine learning", "llm", "gpt", "claude", "neural"],
    "startups": ["startup", "founder", "bootstrapped", "indie", "saas", "mvp", "launch"],
    "web-dev": ["javascript", "typescript", "react", "vue", "nextjs", "node", "web dev", "frontend", "backend", "fullstack"],
    "design": ["design", "ui", "ux", "figma", "typography", "branding", "visual"],
    "marketing": ["marketing", "seo", "growth", "content marketing", "copywriting", "conversion"],
    "crypto": ["crypto", "blockchain", "web3", "ethereum", "bitcoin", "defi", "nft"],
    "productivity": ["productivity", "workflow", "habits", "systems", "notion", "obsidian"],
    "writing": ["writing", "blogging", "newsletter", "essay", "storytelling", "prose"],
    "career": ["career", "job", "interview", "resume", "remote work", "freelance"],
    "health": ["health", "fitness", "mental health", "wellness", "meditation", "exercise"],
    "finance": ["finance", "investing", "money", "budget", "financial", "stocks"],
    "open-source": ["open source", "open-source", "oss", "github", "contribution"],
    "community": ["community", "meetup", "conference", "networking", "collaboration"],
}

_PATTERNS = {
    topic: [re.compile(r"\b" + re.escape(kw)) for kw in kws]
    for topic, kws in TOPIC_KEYWORDS.items()
}


def classify_topics(title: str, excerpt: Optional[str] = None) -> List[str]:
    text = f"{title or ''} {excerpt or ''}".lower()
    matched = [topic for topic, pats in _PATTERNS.items() if any(p.search(text) for p in pats)]
    return matched[:MAX_TOPICS]
