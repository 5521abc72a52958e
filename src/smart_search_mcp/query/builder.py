"""Adaptive query builder.

Searches tables whose structure is only known at runtime. For each table
the builder resolves searchable columns, then walks a fixed cascade of
strategies ordered by precision and stops at the first one that returns
rows:

1. exact      - equality on every searchable column, one term at a time
2. fuzzy      - case-insensitive "contains" on every searchable column
3. partial    - each word (> 2 characters) of every term, as a fuzzy match
4. broad      - no filter, most recent rows, so a failed specific search
                still yields something plausible

A backend error in a stage is classified and recorded on the result, and the
cascade moves on to the next stage.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import threading
import time

from fastmcp.utilities.logging import get_logger
import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from smart_search_mcp.exceptions import InputValidationError, SearchCancelledError
from smart_search_mcp.introspection.introspector import SchemaIntrospector
from smart_search_mcp.introspection.models import DatabaseSchema, TableSchema
from smart_search_mcp.introspection.utils import apply_statement_timeout
from smart_search_mcp.mapping.resolver import ColumnMappingResolver
from smart_search_mcp.validation.errors import (
    ErrorClassifier,
    ErrorContext,
    ErrorKind,
    QueryError,
)
from smart_search_mcp.validation.validator import InputValidator

from .matchers import ContainsMatcher, ExactMatcher, FullTextMatcher, TermMatcher
from .models import Record, QueryResult
from .strategy import BROAD_RESULT_CAP, DEFAULT_STRATEGY, SearchStrategy, get_optimized_strategy

_logger = get_logger(__name__)

MIN_PARTIAL_WORD_LENGTH = 3
DEFAULT_MAX_CELL_CHARS = 500


def partial_words(terms: Sequence[str]) -> list[str]:
    """Split terms on whitespace into unique lowercase words longer than 2 characters."""
    words: list[str] = []
    for term in terms:
        for word in term.lower().split():
            if len(word) >= MIN_PARTIAL_WORD_LENGTH and word not in words:
                words.append(word)
    return words


def _check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        msg = "search cancelled by caller"
        raise SearchCancelledError(msg)


class AdaptiveQueryBuilder:
    """Runs the strategy cascade against tables discovered at runtime.

    Attributes:
        engine: SQLAlchemy engine used for data queries
        introspector: Source of table structure and relevance ranking
        resolver: Column mapping resolver for assumed logical schemas
    """

    def __init__(  # noqa: PLR0913 - explicit collaborators keep this testable
        self,
        engine: Engine,
        introspector: SchemaIntrospector,
        *,
        resolver: ColumnMappingResolver | None = None,
        validator: InputValidator | None = None,
        classifier: ErrorClassifier | None = None,
        fuzzy_matcher: TermMatcher | None = None,
        statement_timeout_sec: int | None = None,
        max_cell_chars: int = DEFAULT_MAX_CELL_CHARS,
    ) -> None:
        self.engine = engine
        self.introspector = introspector
        self.resolver = resolver or ColumnMappingResolver()
        self.validator = validator or InputValidator()
        self.classifier = classifier or ErrorClassifier()
        self.exact_matcher: TermMatcher = ExactMatcher()
        self.fuzzy_matcher: TermMatcher = fuzzy_matcher or ContainsMatcher()
        self.full_text_matcher: TermMatcher = FullTextMatcher()
        self.statement_timeout_sec = statement_timeout_sec
        self.max_cell_chars = max_cell_chars

    # ---- column resolution -------------------------------------------------
    def searchable_columns(self, schema: DatabaseSchema, table: str) -> list[str]:
        """Resolve the columns to search in a table.

        Mapped/text columns from the resolver come first; the introspector's
        name-pattern columns are used when the resolver finds none. Every
        name is then filtered through identifier validation.
        """
        mapping = self.resolver.mapping_for(schema, table)
        columns = list(mapping.searchable_columns) if mapping else []
        if not columns:
            table_schema = schema.tables.get(table)
            columns = list(table_schema.searchable_columns) if table_schema else []
        if not columns:
            return []

        checked = self.validator.validate_column_names(columns)
        for warning in checked.warnings:
            _logger.warning("%s: %s", table, warning)
        return list(checked.sanitized)

    # ---- statement building ------------------------------------------------
    def _table_clause(self, table_schema: TableSchema) -> sa.TableClause:
        return sa.table(
            table_schema.name,
            *[sa.column(name) for name in table_schema.column_names],
            schema=self.introspector.config.schema,
        )

    def _search_expr(
        self, tbl: sa.TableClause, table_schema: TableSchema, name: str
    ) -> ColumnElement[object]:
        col = tbl.c[name]
        descriptor = table_schema.column(name)
        if descriptor is not None and not descriptor.is_text:
            return sa.cast(col, sa.String)
        return col

    def _base_select(
        self,
        tbl: sa.TableClause,
        table_schema: TableSchema,
        limit: int,
        *,
        prefer_recent: bool,
    ) -> Select[tuple[object, ...]]:
        stmt = sa.select(tbl).limit(limit)
        if prefer_recent:
            recency = table_schema.recency_column()
            if recency is not None:
                stmt = stmt.order_by(tbl.c[recency].desc())
        return stmt

    def _full_text_columns(self, table_schema: TableSchema, strategy: SearchStrategy) -> list[str]:
        if not strategy.allow_full_text or self.engine.dialect.name != "postgresql":
            return []
        return [c.name for c in table_schema.columns if c.is_full_text]

    def _fetch(self, stmt: Select[tuple[object, ...]], table: str, limit: int) -> list[Record]:
        with self.engine.connect() as conn:
            apply_statement_timeout(conn, self.statement_timeout_sec)
            raw_rows = conn.execute(stmt).mappings().fetchmany(limit)
        return [Record.from_mapping(table, row, self.max_cell_chars) for row in raw_rows]

    # ---- strategy stages ---------------------------------------------------
    def _match_terms(  # noqa: PLR0913
        self,
        table_schema: TableSchema,
        columns: list[str],
        terms: Sequence[str],
        strategy: SearchStrategy,
        matcher: TermMatcher,
        full_text_columns: Sequence[str] = (),
    ) -> list[Record]:
        """Try each term in turn; return the rows of the first term that matches.

        A term whose query fails is skipped. The last failure is re-raised
        only when no term matched.
        """
        tbl = self._table_clause(table_schema)
        last_exc: Exception | None = None
        for term in terms:
            try:
                predicates = [
                    matcher.clause(self._search_expr(tbl, table_schema, col), term)
                    for col in columns
                ]
                predicates.extend(
                    self.full_text_matcher.clause(tbl.c[col], term) for col in full_text_columns
                )
                stmt = self._base_select(
                    tbl, table_schema, strategy.max_results, prefer_recent=strategy.prefer_recent
                ).where(sa.or_(*predicates))
                rows = self._fetch(stmt, table_schema.name, strategy.max_results)
            except Exception as exc:  # noqa: BLE001 - next term may still match
                _logger.debug(
                    "%s term %r failed in %s: %s", matcher.name, term, table_schema.name, exc
                )
                last_exc = exc
                continue
            if rows:
                return rows
        if last_exc is not None:
            raise last_exc
        return []

    def _broad(self, table_schema: TableSchema, strategy: SearchStrategy) -> list[Record]:
        limit = min(strategy.max_results, BROAD_RESULT_CAP)
        tbl = self._table_clause(table_schema)
        stmt = self._base_select(tbl, table_schema, limit, prefer_recent=True)
        return self._fetch(stmt, table_schema.name, limit)

    # ---- public API ------------------------------------------------------------
    def search(
        self,
        table: str,
        terms: Sequence[str],
        strategy: SearchStrategy = DEFAULT_STRATEGY,
        *,
        cancel: threading.Event | None = None,
    ) -> QueryResult:
        """Search one table with the strategy cascade.

        Args:
            table: Table name from the current schema snapshot
            terms: Sanitized search terms
            strategy: Search strategy for this request
            cancel: Optional cancellation token checked between stages

        Returns:
            QueryResult with the rows of the first successful stage, or no rows
            and an explanatory error

        Raises:
            SearchCancelledError: If ``cancel`` is set between stages
        """
        start = time.perf_counter()
        terms = list(terms)
        result = QueryResult(table=table, search_terms_used=terms)

        def finish() -> QueryResult:
            result.elapsed_ms = (time.perf_counter() - start) * 1000.0
            return result

        ident = self.validator.validate_identifier(table)
        if not ident.ok:
            result.error = self.classifier.classify(
                InputValidationError("; ".join(ident.errors)), ErrorContext(table=table)
            )
            return finish()

        schema = self.introspector.discover()
        table_schema = schema.tables.get(table)
        columns = self.searchable_columns(schema, table) if table_schema else []
        if table_schema is None or not columns:
            result.error = QueryError(
                kind=ErrorKind.DATABASE,
                message=f"No searchable columns found in table {table}",
                table=table,
            )
            _logger.info("Skipping %s: no searchable columns", table)
            return finish()

        result.columns_searched = columns
        _logger.info("Searching table %s in columns: %s", table, ", ".join(columns))
        full_text_cols = self._full_text_columns(table_schema, strategy)

        stages: list[tuple[str, bool, Callable[[], list[Record]]]] = [
            (
                "exact",
                strategy.allow_exact_match,
                lambda: self._match_terms(
                    table_schema, columns, terms, strategy, self.exact_matcher
                ),
            ),
            (
                "fuzzy",
                strategy.allow_fuzzy_match,
                lambda: self._match_terms(
                    table_schema, columns, terms, strategy, self.fuzzy_matcher, full_text_cols
                ),
            ),
            (
                "partial",
                True,
                lambda: self._match_terms(
                    table_schema, columns, partial_words(terms), strategy, self.fuzzy_matcher
                ),
            ),
            ("broad", True, lambda: self._broad(table_schema, strategy)),
        ]

        for name, enabled, run in stages:
            if not enabled:
                continue
            _check_cancelled(cancel)
            try:
                rows = run()
            except Exception as exc:  # noqa: BLE001 - classify and fall through to next stage
                result.error = self.classifier.classify(
                    exc, ErrorContext(table=table, query=f"{name} search")
                )
                _logger.warning(
                    "Strategy %s failed for table %s (%s): %s",
                    name,
                    table,
                    result.error.kind.value,
                    exc,
                )
                continue
            if rows:
                result.rows = rows
                result.strategy = name
                _logger.info("Found %d results using %s strategy in %s", len(rows), name, table)
                return finish()

        _logger.info("No results in %s after all strategies", table)
        return finish()

    def execute_search(
        self,
        terms: Sequence[str],
        intent_type: str = "general",
        strategy: SearchStrategy | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> list[QueryResult]:
        """Search every relevant table; one table failing never stops the others.

        Returns:
            One QueryResult per relevant table, in relevance order (empty when
            no table is relevant)
        """
        strategy = strategy or self.get_optimized_strategy(intent_type)
        tables = self.introspector.find_relevant_tables(intent_type, terms)
        if not tables:
            _logger.info("No relevant tables found for query type: %s", intent_type)
            return []

        _logger.info("Searching %d relevant tables: %s", len(tables), ", ".join(tables))
        results: list[QueryResult] = []
        for table in tables:
            _check_cancelled(cancel)
            try:
                results.append(self.search(table, terms, strategy, cancel=cancel))
            except SearchCancelledError:
                raise
            except Exception as exc:  # noqa: BLE001 - isolate per-table failures
                _logger.warning("Error searching table %s: %s", table, exc)
                results.append(
                    QueryResult(
                        table=table,
                        search_terms_used=list(terms),
                        error=self.classifier.classify(exc, ErrorContext(table=table)),
                    )
                )
        return results

    @staticmethod
    def get_optimized_strategy(intent_type: str) -> SearchStrategy:
        return get_optimized_strategy(intent_type)
