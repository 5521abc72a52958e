from __future__ import annotations

from typing import Any

import sqlalchemy as sa

from smart_search_mcp.introspection import DatabaseSchema, TableSchema, build_table_schema
from smart_search_mcp.mapping import ColumnMappingResolver, find_best_column_match


def _table(name: str, columns: list[tuple[str, Any]]) -> TableSchema:
    payload = {"columns": [{"name": n, "type": t} for n, t in columns], "pk": ["id"]}
    return build_table_schema(name, payload, discovered_at=1.0)


PIANOS = _table(
    "pianos",
    [
        ("id", sa.Integer()),
        ("piano_title", sa.Text()),
        ("artist_name", sa.String(100)),
        ("notes", sa.Text()),
        ("created_at", sa.DateTime()),
    ],
)


def test_find_best_column_match_prefers_exact() -> None:
    columns = ["Title_Text", "Title"]
    assert find_best_column_match(["title"], columns) == "Title"


def test_find_best_column_match_substring_either_direction() -> None:
    assert find_best_column_match(["headline"], ["news_headline", "body"]) == "news_headline"
    assert find_best_column_match(["news_excerpt"], ["excerpt", "body"]) == "excerpt"
    assert find_best_column_match(["venue"], ["body", "created_at"]) is None


def test_resolve_with_assumed_schema() -> None:
    resolver = ColumnMappingResolver()
    mapping = resolver.resolve(PIANOS, resolver.assumed_for("pianos"))

    assert mapping.mappings["title"] == "piano_title"
    assert mapping.mappings["artist"] == "artist_name"
    assert set(mapping.unmapped) == {"statement", "location"}
    assert mapping.display_columns == ("piano_title", "artist_name")
    # Unmapped but textual columns remain searchable
    assert mapping.searchable_columns == ("piano_title", "artist_name", "notes")


def test_resolve_without_assumed_schema_uses_text_columns() -> None:
    table = _table(
        "reviews",
        [("id", sa.Integer()), ("uuid", sa.String(36)), ("body", sa.Text()), ("stars", sa.Integer())],
    )
    resolver = ColumnMappingResolver()
    assert resolver.assumed_for("reviews") is None

    mapping = resolver.resolve(table, None)
    assert mapping.mappings == {}
    assert mapping.searchable_columns == ("body",)
    assert mapping.display_columns == ("body",)


def test_custom_assumed_schemas_override_builtin() -> None:
    resolver = ColumnMappingResolver({"pianos": {"headline": ("notes",)}})
    mapping = resolver.resolve(PIANOS, resolver.assumed_for("pianos"))
    assert mapping.mappings["headline"] == "notes"
    assert "title" not in mapping.mappings


def test_mapping_cached_per_snapshot_version() -> None:
    resolver = ColumnMappingResolver()
    v1 = DatabaseSchema.build({"pianos": PIANOS}, last_updated=1.0, version=1)
    v2 = DatabaseSchema.build({"pianos": PIANOS}, last_updated=2.0, version=2)

    first = resolver.mapping_for(v1, "pianos")
    assert first is not None
    assert resolver.mapping_for(v1, "pianos") is first

    refreshed = resolver.mapping_for(v2, "pianos")
    assert refreshed is not first
    assert refreshed == first
    assert resolver.mapping_for(v2, "missing") is None
