"""Constants and enums for schema introspection.

This module contains the name hints, type hints, category vocabulary and
scoring weights used to classify discovered columns and rank tables for a
search request.
"""

from __future__ import annotations

from enum import Enum
from typing import Final


class Constants:
    """Configuration constants for SchemaIntrospector."""

    # Cache TTL bounds (seconds)
    DEFAULT_SCHEMA_TTL_SEC: Final[int] = 5 * 60
    MIN_SCHEMA_TTL_SEC: Final[int] = 5 * 60
    MAX_SCHEMA_TTL_SEC: Final[int] = 30 * 60
    DEFAULT_TIMEOUT_SEC: Final[int] = 10

    # Relevance ranking
    MAX_RELEVANT_TABLES: Final[int] = 5
    CATEGORY_MATCH_SCORE: Final[int] = 10
    SEARCHABLE_COLUMN_SCORE: Final[int] = 2
    FULL_TEXT_SCORE: Final[int] = 5
    CONTENT_COLUMN_SCORE: Final[int] = 3
    FULL_TEXT_MIN_SEARCHABLE: Final[int] = 3

    # Column names that suggest free text regardless of declared type
    CONTENT_NAME_HINTS: Final[tuple[str, ...]] = (
        "title",
        "name",
        "content",
        "description",
        "excerpt",
        "body",
        "text",
    )

    # Column names used to bonus tables with content-like columns
    CONTENT_SCORE_HINTS: Final[tuple[str, ...]] = (
        "title",
        "content",
        "description",
        "text",
        "body",
        "excerpt",
    )

    # Semantic hints for type detection when the reflected type is opaque
    TEXT_TYPE_HINTS: Final[frozenset[str]] = frozenset(
        {"char", "text", "string", "clob", "citext", "uuid"}
    )
    DATE_TYPE_HINTS: Final[frozenset[str]] = frozenset({"date", "datetime", "time", "timestamp"})
    NUMERIC_TYPE_HINTS: Final[frozenset[str]] = frozenset(
        {"int", "dec", "num", "float", "double", "real", "money"}
    )
    STRUCTURED_TYPE_HINTS: Final[frozenset[str]] = frozenset({"json", "array", "xml", "hstore"})
    FULL_TEXT_TYPE_HINTS: Final[frozenset[str]] = frozenset({"tsvector"})

    # Preferred recency columns, in priority order
    RECENCY_COLUMNS: Final[tuple[str, ...]] = (
        "created_at",
        "updated_at",
        "date_created",
        "published_at",
        "timestamp",
    )

    # Category -> keywords that mark a table as belonging to that category
    CATEGORY_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
        "knowledge": ("knowledge", "document", "content", "article"),
        "chat": ("chat", "message", "conversation", "log"),
        "user": ("user", "session", "profile", "account"),
        "piano": ("piano", "instrument", "music"),
        "news": ("news", "article", "post", "content"),
        "event": ("event", "activity", "activation", "schedule"),
    }


class TypeCategory(str, Enum):
    """Coarse type families for discovered columns."""

    TEXT = "text"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    TEMPORAL = "temporal"
    STRUCTURED = "structured"
    UNKNOWN = "unknown"


__all__ = [
    "Constants",
    "TypeCategory",
]
