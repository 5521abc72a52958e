"""Adaptive query building over runtime-discovered schemas."""

from .builder import AdaptiveQueryBuilder, partial_words
from .matchers import ContainsMatcher, ExactMatcher, FullTextMatcher, TermMatcher
from .models import QueryResult, Record, Scalar, to_scalar
from .strategy import DEFAULT_STRATEGY, SearchStrategy, get_optimized_strategy

__all__ = [
    "DEFAULT_STRATEGY",
    "AdaptiveQueryBuilder",
    "ContainsMatcher",
    "ExactMatcher",
    "FullTextMatcher",
    "QueryResult",
    "Record",
    "Scalar",
    "SearchStrategy",
    "TermMatcher",
    "get_optimized_strategy",
    "partial_words",
    "to_scalar",
]
