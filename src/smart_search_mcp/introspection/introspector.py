"""Schema introspector with a TTL-cached, atomically swapped snapshot.

The introspector is the only writer of the cached ``DatabaseSchema``. A
discovery pass builds a complete new snapshot and publishes it with one
reference assignment. Concurrent refreshes may race; the last writer wins,
which is acceptable because readers only need a consistent recent snapshot.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import time
from typing import Any

from fastmcp.utilities.logging import get_logger
from sqlalchemy.engine import Engine

from smart_search_mcp.exceptions import ReflectionError

from .constants import Constants
from .models import (
    EMPTY_SCHEMA,
    ColumnDescriptor,
    DatabaseSchema,
    IntrospectorConfig,
    TableSchema,
)
from .reflection import ReflectionAdapter
from .utils import (
    classify_type,
    declared_type_name,
    has_content_hint,
    is_identifier_name,
    tokens_from_text,
)

_logger = get_logger(__name__)


def build_table_schema(
    name: str, payload: dict[str, Any], *, discovered_at: float
) -> TableSchema:
    """Build a TableSchema from a reflection payload for one table.

    A column is searchable when its type is text-like or its name contains a
    content-indicative substring. A table is full-text capable with at least
    three searchable columns or a dedicated full-text column.
    """
    pk_cols = {c.lower() for c in payload.get("pk", [])}
    columns: list[ColumnDescriptor] = []
    for col in payload.get("columns", []):
        col_name = str(col["name"])
        columns.append(
            ColumnDescriptor(
                name=col_name,
                type_category=classify_type(col["type"]),
                declared_type=declared_type_name(col["type"]),
                nullable=bool(col.get("nullable", True)),
                is_identifier=col_name.lower() in pk_cols or is_identifier_name(col_name),
            )
        )

    searchable = tuple(
        c.name
        for c in columns
        if not c.is_full_text and (c.is_text or has_content_hint(c.name))
    )
    has_full_text = len(searchable) >= Constants.FULL_TEXT_MIN_SEARCHABLE or any(
        c.is_full_text for c in columns
    )
    return TableSchema(
        name=name,
        columns=tuple(columns),
        searchable_columns=searchable,
        has_full_text_capability=has_full_text,
        discovered_at=discovered_at,
    )


class SchemaIntrospector:
    """Discovers live table/column structure and ranks tables for a search.

    Attributes:
        engine: SQLAlchemy engine used for catalog queries
        config: Introspection configuration (schema, TTL, timeouts)
        last_refresh_error: Message of the most recent failed discovery, or
            None when the last discovery succeeded
    """

    def __init__(
        self,
        engine: Engine,
        config: IntrospectorConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
        adapter: ReflectionAdapter | None = None,
    ) -> None:
        self.engine = engine
        self.config = config or IntrospectorConfig()
        self._clock = clock
        self._adapter = adapter or ReflectionAdapter(
            engine,
            self.config.schema,
            reflect_timeout_sec=self.config.statement_timeout_sec,
        )
        self._snapshot: DatabaseSchema = EMPTY_SCHEMA
        self.last_refresh_error: str | None = None

    # ---- cache -------------------------------------------------------------
    @property
    def snapshot(self) -> DatabaseSchema:
        """Current cached snapshot without triggering discovery."""
        return self._snapshot

    def _is_fresh(self, snapshot: DatabaseSchema) -> bool:
        if snapshot.version == 0:
            return False
        return self._clock() - snapshot.last_updated < self.config.ttl_sec

    def clear_cache(self) -> None:
        """Drop the cached snapshot; the next discover() reflects again."""
        self._snapshot = EMPTY_SCHEMA

    def discover(self, *, force_refresh: bool = False) -> DatabaseSchema:
        """Return the database schema, reflecting when stale or forced.

        Never raises: when the catalog cannot be read, the previous snapshot
        (possibly empty) is returned and ``last_refresh_error`` is set.

        Args:
            force_refresh: Ignore the TTL and reflect again

        Returns:
            A complete DatabaseSchema snapshot
        """
        current = self._snapshot
        if not force_refresh and self._is_fresh(current):
            return current

        _logger.info("Introspecting database schema…")
        started = self._clock()
        try:
            payload = self._adapter.reflect()
        except ReflectionError as exc:
            self.last_refresh_error = str(exc)
            _logger.warning(
                "Schema introspection failed; keeping previous snapshot (version=%d): %s",
                current.version,
                exc,
            )
            return current

        tables: dict[str, TableSchema] = {}
        for table_name, table_payload in payload.items():
            try:
                tables[table_name] = build_table_schema(
                    table_name, table_payload, discovered_at=started
                )
            except (KeyError, TypeError, ValueError) as exc:
                _logger.warning("Skipping table %s: %s", table_name, exc)

        snapshot = DatabaseSchema.build(
            tables, last_updated=started, version=current.version + 1
        )
        # Single reference swap publishes the new snapshot.
        self._snapshot = snapshot
        self.last_refresh_error = None
        _logger.info(
            "Schema introspection complete: %d tables discovered (version=%d)",
            len(tables),
            snapshot.version,
        )
        return snapshot

    # ---- queries over the snapshot ----------------------------------------
    def get_table(self, table: str) -> TableSchema | None:
        return self.discover().tables.get(table)

    def get_searchable_columns(self, table: str) -> list[str]:
        """Return searchable columns for a table, or [] if the table is unknown."""
        table_schema = self.get_table(table)
        if table_schema is None:
            return []
        return list(table_schema.searchable_columns)

    def validate_column(self, table: str, column: str) -> bool:
        """True if the column exists in the table."""
        table_schema = self.get_table(table)
        return table_schema is not None and table_schema.column(column) is not None

    def find_relevant_tables(self, intent_type: str, terms: Sequence[str]) -> list[str]:
        """Rank known tables by heuristic relevance to an intent and terms.

        A category is triggered when the intent type contains the category
        name or a term token contains one of its keywords. Tables whose name contains
        a keyword of a triggered category gain the category bonus; when some
        category is triggered, tables matching none of them are excluded.
        Structural points are then added per searchable column, for full-text
        capability and per content-like column.

        Returns:
            Up to ``max_relevant_tables`` table names, highest score first,
            ties broken by table name. May be empty.
        """
        schema = self.discover()
        intent = (intent_type or "").lower()
        term_set = {t.lower() for t in terms if isinstance(t, str)}
        term_tokens = term_set | {tok for t in term_set for tok in tokens_from_text(t)}

        triggered = [
            keywords
            for category, keywords in Constants.CATEGORY_KEYWORDS.items()
            if category in intent or any(k in tok for tok in term_tokens for k in keywords)
        ]

        scores: dict[str, int] = {}
        for table_name, table_schema in schema.tables.items():
            lowered = table_name.lower()
            category_hits = sum(
                1 for keywords in triggered if any(k in lowered for k in keywords)
            )
            if triggered and category_hits == 0:
                continue

            score = category_hits * Constants.CATEGORY_MATCH_SCORE
            score += len(table_schema.searchable_columns) * Constants.SEARCHABLE_COLUMN_SCORE
            if table_schema.has_full_text_capability:
                score += Constants.FULL_TEXT_SCORE
            content_cols = [
                c
                for c in table_schema.searchable_columns
                if has_content_hint(c, Constants.CONTENT_SCORE_HINTS)
            ]
            score += len(content_cols) * Constants.CONTENT_COLUMN_SCORE

            if score > 0:
                scores[table_name] = score

        ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        return [name for name, _ in ranked[: self.config.max_relevant_tables]]

    def schema_summary(self, *, max_columns: int = 5) -> str:
        """Summarize the schema in a compact form for the reasoning collaborator."""
        schema = self.discover()
        if schema.is_empty:
            return "No accessible database schema found."

        lines = ["Database contains the following tables:"]
        for table_name in sorted(schema.tables):
            table_schema = schema.tables[table_name]
            searchable = ", ".join(table_schema.searchable_columns[:max_columns])
            lines.append(
                f"- {table_name}: {len(table_schema.columns)} columns, searchable: [{searchable}]"
            )
        return "\n".join(lines)
