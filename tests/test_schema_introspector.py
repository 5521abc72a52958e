from __future__ import annotations

from typing import Any

import pytest
import sqlalchemy as sa
from sqlalchemy import text

from smart_search_mcp.exceptions import ReflectionError
from smart_search_mcp.introspection import (
    IntrospectorConfig,
    ReflectionAdapter,
    SchemaIntrospector,
    TypeCategory,
    build_table_schema,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class BrokenAdapter(ReflectionAdapter):
    """Adapter whose catalog is unreachable after ``fail_after`` successful passes."""

    def __init__(self, engine: sa.Engine, fail_after: int = 0) -> None:
        super().__init__(engine)
        self.calls = 0
        self.fail_after = fail_after

    def reflect(self) -> dict[str, dict[str, Any]]:
        self.calls += 1
        if self.calls > self.fail_after:
            msg = "Failed to list database tables: connection refused"
            raise ReflectionError(msg)
        return super().reflect()


def test_discover_classifies_columns(piano_engine: sa.Engine) -> None:
    intro = SchemaIntrospector(piano_engine)
    schema = intro.discover()

    assert set(schema.tables) == {"pianos"}
    pianos = schema.tables["pianos"]
    assert pianos.column_names == ["id", "piano_title", "artist_name", "created_at"]
    assert pianos.searchable_columns == ("piano_title", "artist_name")
    assert pianos.has_full_text_capability is False
    id_col = pianos.column("id")
    assert id_col is not None
    assert id_col.is_identifier
    assert id_col.type_category is TypeCategory.NUMERIC
    created = pianos.column("created_at")
    assert created is not None
    assert created.type_category is TypeCategory.TEMPORAL
    assert pianos.recency_column() == "created_at"


def test_discover_is_cached_within_ttl(piano_engine: sa.Engine) -> None:
    clock = FakeClock()
    intro = SchemaIntrospector(piano_engine, IntrospectorConfig(ttl_sec=300), clock=clock)

    first = intro.discover()
    second = intro.discover()
    assert first is second
    assert first.version == 1

    clock.now += 301
    third = intro.discover()
    assert third is not first
    assert third.version == 2


def test_force_refresh_and_clear_cache(piano_engine: sa.Engine) -> None:
    intro = SchemaIntrospector(piano_engine)
    first = intro.discover()
    forced = intro.discover(force_refresh=True)
    assert forced.version == first.version + 1

    intro.clear_cache()
    assert intro.snapshot.is_empty
    assert intro.discover().tables.keys() == {"pianos"}


def test_total_failure_returns_previous_snapshot(piano_engine: sa.Engine) -> None:
    adapter = BrokenAdapter(piano_engine, fail_after=1)
    intro = SchemaIntrospector(piano_engine, adapter=adapter)

    good = intro.discover()
    assert intro.last_refresh_error is None

    again = intro.discover(force_refresh=True)
    assert again is good
    assert intro.last_refresh_error is not None
    assert "connection refused" in intro.last_refresh_error


def test_total_failure_without_cache_returns_empty(engine: sa.Engine) -> None:
    intro = SchemaIntrospector(engine, adapter=BrokenAdapter(engine))
    schema = intro.discover()
    assert schema.is_empty
    assert schema.version == 0
    assert intro.last_refresh_error is not None


def test_per_table_failure_is_skipped(piano_engine: sa.Engine) -> None:
    with piano_engine.begin() as conn:
        conn.execute(text("CREATE TABLE news(id INTEGER PRIMARY KEY, news_title TEXT)"))

    class SkippingAdapter(ReflectionAdapter):
        def reflect_table(self, inspector: Any, table: str) -> dict[str, Any]:
            if table == "news":
                msg = "permission denied for table news"
                raise RuntimeError(msg)
            return super().reflect_table(inspector, table)

    intro = SchemaIntrospector(piano_engine, adapter=SkippingAdapter(piano_engine))
    assert set(intro.discover().tables) == {"pianos"}


def test_unknown_table_has_no_searchable_columns(piano_engine: sa.Engine) -> None:
    intro = SchemaIntrospector(piano_engine)
    assert intro.get_searchable_columns("missing") == []
    assert intro.get_searchable_columns("pianos") == ["piano_title", "artist_name"]
    assert intro.validate_column("pianos", "ARTIST_NAME") is True
    assert intro.validate_column("pianos", "nope") is False


def test_find_relevant_tables_excludes_untriggered_tables(piano_engine: sa.Engine) -> None:
    intro = SchemaIntrospector(piano_engine)
    assert intro.find_relevant_tables("news", ["update"]) == []


def test_find_relevant_tables_prefers_category_match(engine: sa.Engine) -> None:
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE news(id INTEGER PRIMARY KEY, news_title TEXT)"))
        conn.execute(
            text(
                "CREATE TABLE chat_logs(id INTEGER PRIMARY KEY, message TEXT, reply TEXT, "
                "summary TEXT)"
            )
        )
    intro = SchemaIntrospector(engine)
    assert intro.find_relevant_tables("news_search", ["concert"]) == ["news"]
    assert intro.find_relevant_tables("general_search", ["chat"]) == ["chat_logs"]


def test_plural_term_triggers_category(piano_engine: sa.Engine) -> None:
    intro = SchemaIntrospector(piano_engine)
    assert intro.find_relevant_tables("knowledge_search", ["info", "about", "pianos"]) == [
        "pianos"
    ]


def test_find_relevant_tables_structural_ranking(engine: sa.Engine) -> None:
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE beta(id INTEGER PRIMARY KEY, title TEXT)"))
        conn.execute(text("CREATE TABLE alpha(id INTEGER PRIMARY KEY, title TEXT)"))
        conn.execute(text("CREATE TABLE counters(id INTEGER PRIMARY KEY, hits INTEGER)"))
        conn.execute(
            text(
                "CREATE TABLE articles_big(id INTEGER PRIMARY KEY, title TEXT, body TEXT, "
                "excerpt TEXT)"
            )
        )
    intro = SchemaIntrospector(engine)
    ranked = intro.find_relevant_tables("general_search", ["xyz"])
    # 3 searchable * 2 + full text 5 + 3 content * 3 = 20; title-only tables score 5
    assert ranked == ["articles_big", "alpha", "beta"]


def test_find_relevant_tables_truncates_to_top_five(engine: sa.Engine) -> None:
    with engine.begin() as conn:
        for i in range(7):
            conn.execute(text(f"CREATE TABLE t{i}(id INTEGER PRIMARY KEY, title TEXT)"))
    intro = SchemaIntrospector(engine)
    assert intro.find_relevant_tables("general", []) == ["t0", "t1", "t2", "t3", "t4"]


def test_build_table_schema_full_text_capability() -> None:
    payload = {
        "columns": [
            {"name": "id", "type": sa.Integer(), "nullable": False},
            {"name": "title", "type": sa.String(200), "nullable": True},
            {"name": "content", "type": sa.Text(), "nullable": True},
            {"name": "author", "type": sa.String(50), "nullable": True},
            {"name": "payload", "type": sa.JSON(), "nullable": True},
        ],
        "pk": ["id"],
    }
    table = build_table_schema("knowledge_documents", payload, discovered_at=1.0)
    assert table.searchable_columns == ("title", "content", "author")
    assert table.has_full_text_capability is True
    assert table.recency_column() is None


@pytest.mark.parametrize(
    ("columns", "expected"),
    [
        (["updated_at", "created_at"], "created_at"),
        (["published_at", "happened_on"], "published_at"),
        (["happened_on"], "happened_on"),
    ],
)
def test_recency_column_priority(columns: list[str], expected: str) -> None:
    payload = {"columns": [{"name": c, "type": sa.DateTime()} for c in columns], "pk": []}
    table = build_table_schema("events", payload, discovered_at=1.0)
    assert table.recency_column() == expected


def test_schema_summary_lists_tables(piano_engine: sa.Engine) -> None:
    summary = SchemaIntrospector(piano_engine).schema_summary()
    assert summary.startswith("Database contains the following tables:")
    assert "- pianos: 4 columns, searchable: [piano_title, artist_name]" in summary
