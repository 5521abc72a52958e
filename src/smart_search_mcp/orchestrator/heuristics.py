"""Keyword heuristics used when the reasoning collaborator is unavailable."""

from __future__ import annotations

import re
from typing import Final

from .reasoning import IntentAnalysis

MAX_SIMPLE_TERMS: Final[int] = 5
MIN_SIMPLE_TERM_LENGTH: Final[int] = 3

# (keywords, intent type, confidence, reasoning); first match wins
_INTENT_RULES: Final[tuple[tuple[tuple[str, ...], str, float, str], ...]] = (
    (("chat", "conversation", "message"), "chat_search", 0.7, "chat-related"),
    (("knowledge", "document", "info"), "knowledge_search", 0.6, "knowledge-related"),
    (("news", "article"), "news_search", 0.6, "news-related"),
    (("piano", "instrument"), "piano_search", 0.6, "piano-related"),
)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def extract_simple_terms(query: str) -> list[str]:
    """Lower-cased alphanumeric words longer than two characters, at most five."""
    cleaned = _NON_ALNUM.sub("", query.lower())
    words = [w for w in cleaned.split() if len(w) >= MIN_SIMPLE_TERM_LENGTH]
    return words[:MAX_SIMPLE_TERMS]


def fallback_analysis(query: str) -> IntentAnalysis:
    """Classify a query by substring checks against a small fixed vocabulary."""
    lowered = query.lower()
    terms = extract_simple_terms(query)
    for keywords, intent_type, confidence, label in _INTENT_RULES:
        if any(k in lowered for k in keywords):
            return IntentAnalysis(
                intent_type=intent_type,
                search_terms=terms,
                confidence=confidence,
                reasoning=f"Query contains {label} keywords",
            )
    return IntentAnalysis(
        intent_type="general_search",
        search_terms=terms,
        confidence=0.4,
        reasoning="Fallback analysis - general search",
    )
