"""Search strategy value objects and the per-intent lookup table."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Final


@dataclass(frozen=True, slots=True)
class SearchStrategy:
    """Immutable configuration for one search.

    Attributes:
        allow_exact_match: Run the equality stage
        allow_fuzzy_match: Run the case-insensitive "contains" stage
        allow_full_text: Add full-text predicates where the table supports them
        max_results: Row cap for the pattern stages
        prefer_recent: Order by the table's recency column
    """

    allow_exact_match: bool = True
    allow_fuzzy_match: bool = True
    allow_full_text: bool = False
    max_results: int = 20
    prefer_recent: bool = True


DEFAULT_STRATEGY: Final[SearchStrategy] = SearchStrategy()

BROAD_RESULT_CAP: Final[int] = 10

_STRATEGIES: Final[dict[str, SearchStrategy]] = {
    "news_search": replace(DEFAULT_STRATEGY, prefer_recent=True, max_results=15),
    "article_search": replace(DEFAULT_STRATEGY, prefer_recent=True, max_results=15),
    "knowledge_search": replace(DEFAULT_STRATEGY, allow_full_text=True, max_results=10),
    "document_search": replace(DEFAULT_STRATEGY, allow_full_text=True, max_results=10),
    "user_search": replace(
        DEFAULT_STRATEGY, allow_exact_match=True, allow_fuzzy_match=False, max_results=5
    ),
    "profile_search": replace(
        DEFAULT_STRATEGY, allow_exact_match=True, allow_fuzzy_match=False, max_results=5
    ),
    "broad_search": replace(DEFAULT_STRATEGY, max_results=25, prefer_recent=False),
    "general_search": replace(DEFAULT_STRATEGY, max_results=25, prefer_recent=False),
}


def get_optimized_strategy(intent_type: str) -> SearchStrategy:
    """Return the strategy for an intent type; unknown types get the default."""
    return _STRATEGIES.get((intent_type or "").strip().lower(), DEFAULT_STRATEGY)
