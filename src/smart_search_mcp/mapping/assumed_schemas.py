"""Assumed logical schemas for known tables.

Each entry maps a logical field name used by the application to the candidate
column names it may have in a live database, most specific first.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Final

AssumedSchema = Mapping[str, Sequence[str]]

ASSUMED_SCHEMAS: Final[dict[str, dict[str, tuple[str, ...]]]] = {
    "pianos": {
        "title": ("piano_title", "title", "name", "piano_name"),
        "artist": ("artist_name", "artist", "musician", "composer"),
        "statement": ("piano_statement", "statement", "description", "about", "info"),
        "location": ("piano_location", "location", "address", "venue", "place"),
    },
    "news": {
        "title": ("news_title", "title", "headline", "name"),
        "content": ("newscontent", "content", "body", "text", "description"),
        "excerpt": ("news_excerpt", "excerpt", "summary", "brief", "abstract"),
        "categories": ("news_categories", "categories", "category", "tags", "type"),
    },
    "piano_activations": {
        "title": ("act_title", "title", "name", "activation_title"),
        "location": ("act_location", "location", "venue", "address"),
        "content": ("act_content", "content", "description", "details", "info"),
        "artists": ("act_artists", "artists", "performers", "musicians"),
    },
}

# Logical names whose resolved columns are considered primary for display
PRIMARY_DISPLAY_FIELDS: Final[tuple[str, ...]] = ("title", "name", "artist", "location")


def assumed_schema_for(table: str) -> AssumedSchema | None:
    """Return the assumed logical schema for a table, if one is known."""
    return ASSUMED_SCHEMAS.get(table.lower())
