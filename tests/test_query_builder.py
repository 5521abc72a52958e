from __future__ import annotations

import pytest
import sqlalchemy as sa
from sqlalchemy import text
from sqlalchemy.dialects import postgresql
from sqlalchemy.sql.elements import ColumnElement

from smart_search_mcp.introspection import SchemaIntrospector
from smart_search_mcp.query import (
    DEFAULT_STRATEGY,
    AdaptiveQueryBuilder,
    ContainsMatcher,
    FullTextMatcher,
    QueryResult,
    SearchStrategy,
    get_optimized_strategy,
    partial_words,
)
from smart_search_mcp.validation import ErrorKind


def _builder(engine: sa.Engine, **kwargs: object) -> AdaptiveQueryBuilder:
    return AdaptiveQueryBuilder(engine, SchemaIntrospector(engine), **kwargs)  # type: ignore[arg-type]


def _titles(result: QueryResult) -> list[object]:
    return [r.fields["piano_title"] for r in result.rows]


def test_happy_path_finds_artist_via_fuzzy(piano_engine: sa.Engine) -> None:
    result = _builder(piano_engine).search("pianos", ["Mozart"])

    assert result.error is None
    assert result.strategy == "fuzzy"
    assert [r.fields["artist_name"] for r in result.rows] == ["Wolfgang Mozart"]
    assert result.columns_searched == ["piano_title", "artist_name"]
    assert result.search_terms_used == ["Mozart"]
    assert result.elapsed_ms >= 0.0


def test_exact_match_wins_over_fuzzy(piano_engine: sa.Engine) -> None:
    result = _builder(piano_engine).search("pianos", ["Chopin"])

    assert result.strategy == "exact"
    assert _titles(result) == ["Chopin"]


def test_fuzzy_used_when_exact_disabled(piano_engine: sa.Engine) -> None:
    strategy = SearchStrategy(allow_exact_match=False)
    result = _builder(piano_engine).search("pianos", ["Chopin"], strategy)

    assert result.strategy == "fuzzy"
    # prefer_recent orders newest first
    assert _titles(result) == ["Chopin Nocturne Blue", "Chopin"]


def test_partial_word_stage(piano_engine: sa.Engine) -> None:
    result = _builder(piano_engine).search("pianos", ["Lovelace harbour zz"])

    assert result.strategy == "partial"
    assert _titles(result) == ["Harbour Lights"]


def test_broad_fallback_returns_recent_rows(piano_engine: sa.Engine) -> None:
    strategy = SearchStrategy(max_results=3)
    result = _builder(piano_engine).search("pianos", ["qqq"], strategy)

    assert result.strategy == "broad"
    assert _titles(result) == ["Harbour Lights", "Chopin Nocturne Blue", "Chopin"]


def test_broad_fallback_capped_at_ten(engine: sa.Engine) -> None:
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE notes(id INTEGER PRIMARY KEY, body TEXT)"))
        for i in range(15):
            conn.execute(text("INSERT INTO notes(body) VALUES (:b)"), {"b": f"note {i}"})
    result = _builder(engine).search("notes", ["absent"], SearchStrategy(max_results=50))
    assert result.strategy == "broad"
    assert len(result.rows) == 10


def test_table_without_searchable_columns(engine: sa.Engine) -> None:
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE counters(id INTEGER PRIMARY KEY, hits INTEGER)"))
        conn.execute(text("INSERT INTO counters(hits) VALUES (1)"))
    builder = _builder(engine)

    result = builder.search("counters", ["1"])
    assert result.rows == []
    assert result.error is not None
    assert "No searchable columns" in result.error.message

    missing = builder.search("missing_table", ["x"])
    assert missing.rows == []
    assert missing.error is not None


def test_invalid_table_identifier_is_validation_error(piano_engine: sa.Engine) -> None:
    result = _builder(piano_engine).search("pianos; drop", ["x"])
    assert result.error is not None
    assert result.error.kind is ErrorKind.VALIDATION


class ExplodingMatcher:
    name = "fuzzy"

    def clause(self, column: ColumnElement[object], term: str) -> ColumnElement[bool]:
        msg = "server closed the connection unexpectedly"
        raise RuntimeError(msg)


def test_stage_error_is_classified_and_cascade_continues(piano_engine: sa.Engine) -> None:
    builder = _builder(piano_engine, fuzzy_matcher=ExplodingMatcher())
    result = builder.search("pianos", ["Mozart"])

    assert result.strategy == "broad"
    assert result.rows
    assert result.error is not None
    assert result.error.kind is ErrorKind.NETWORK
    assert result.error.table == "pianos"


class PickyMatcher:
    name = "fuzzy"

    def __init__(self) -> None:
        self.tried: list[str] = []

    def clause(self, column: ColumnElement[object], term: str) -> ColumnElement[bool]:
        self.tried.append(term)
        if term == "bad":
            msg = "operator does not exist for this term"
            raise RuntimeError(msg)
        return ContainsMatcher().clause(column, term)


def test_failing_term_does_not_stop_later_terms(piano_engine: sa.Engine) -> None:
    matcher = PickyMatcher()
    result = _builder(piano_engine, fuzzy_matcher=matcher).search("pianos", ["bad", "Mozart"])

    assert result.strategy == "fuzzy"
    assert [r.fields["artist_name"] for r in result.rows] == ["Wolfgang Mozart"]
    assert "Mozart" in matcher.tried
    assert result.error is None


def test_cell_values_truncated(piano_engine: sa.Engine) -> None:
    with piano_engine.begin() as conn:
        conn.execute(
            text("INSERT INTO pianos(id, piano_title, artist_name) VALUES (9, :t, 'Long Title')"),
            {"t": "Variations " * 20},
        )
    result = _builder(piano_engine, max_cell_chars=20).search("pianos", ["Long Title"])
    assert result.strategy == "exact"
    title = result.rows[0].fields["piano_title"]
    assert isinstance(title, str)
    assert len(title) == 20
    assert title.endswith("…")


def test_execute_search_isolates_failing_table(piano_engine: sa.Engine) -> None:
    with piano_engine.begin() as conn:
        conn.execute(
            text("CREATE TABLE piano_activations(id INTEGER PRIMARY KEY, act_title TEXT)")
        )
    builder = _builder(piano_engine)
    builder.introspector.discover()
    # Table disappears after discovery; the cached snapshot still lists it.
    with piano_engine.begin() as conn:
        conn.execute(text("DROP TABLE piano_activations"))

    results = builder.execute_search(["Mozart"], "piano_search")
    by_table = {r.table: r for r in results}

    assert set(by_table) == {"pianos", "piano_activations"}
    assert by_table["pianos"].rows
    failed = by_table["piano_activations"]
    assert failed.rows == []
    assert failed.error is not None
    assert failed.error.kind is ErrorKind.DATABASE


def test_execute_search_with_no_relevant_tables(piano_engine: sa.Engine) -> None:
    assert _builder(piano_engine).execute_search(["update"], "news_search") == []


def test_optimized_strategies() -> None:
    assert get_optimized_strategy("unknown_kind") == DEFAULT_STRATEGY
    assert DEFAULT_STRATEGY == SearchStrategy(
        allow_exact_match=True,
        allow_fuzzy_match=True,
        allow_full_text=False,
        max_results=20,
        prefer_recent=True,
    )

    news = get_optimized_strategy("news_search")
    assert news.prefer_recent is True
    assert news.max_results < DEFAULT_STRATEGY.max_results

    assert get_optimized_strategy("Knowledge_Search").allow_full_text is True

    user = get_optimized_strategy("user_search")
    assert user.allow_fuzzy_match is False
    assert user.max_results == 5


def test_partial_words() -> None:
    assert partial_words(["The Blue piano", "blue an"]) == ["the", "blue", "piano"]


def test_matchers_compile() -> None:
    contains = ContainsMatcher().clause(sa.column("title"), "50%_off")
    assert "ESCAPE" in str(contains.compile())

    full_text = FullTextMatcher().clause(sa.column("search_vector"), "piano")
    compiled = str(full_text.compile(dialect=postgresql.dialect()))
    assert "@@ plainto_tsquery" in compiled


def test_get_optimized_strategy_on_builder(piano_engine: sa.Engine) -> None:
    assert _builder(piano_engine).get_optimized_strategy("news") == DEFAULT_STRATEGY


@pytest.mark.parametrize("intent", ["piano_search", "general_search"])
def test_execute_search_returns_rows_for_relevant_table(
    piano_engine: sa.Engine, intent: str
) -> None:
    results = _builder(piano_engine).execute_search(["Mozart"], intent)
    assert [r.table for r in results] == ["pianos"]
    assert results[0].rows[0].fields["artist_name"] == "Wolfgang Mozart"
