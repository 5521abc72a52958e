"""Column mapping resolver.

Reconciles the logical field names an application assumes ("title",
"location", ...) with the columns that actually exist in a discovered table.
Matching is exact (case-insensitive) first, then substring in either
direction; fields with no match stay unmapped.

Mappings are cached per table and schema snapshot version. A new snapshot
version produces a new mapping; existing mappings are never mutated.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from fastmcp.utilities.logging import get_logger

from smart_search_mcp.introspection.models import DatabaseSchema, TableSchema
from smart_search_mcp.introspection.utils import is_identifier_name

from .assumed_schemas import PRIMARY_DISPLAY_FIELDS, AssumedSchema, assumed_schema_for

_logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Resolved mapping for one table.

    Attributes:
        table: Table name
        mappings: Logical field name -> actual column name
        searchable_columns: Text-like columns to search, mapped ones first
        display_columns: Columns considered primary for presentation
        unmapped: Logical names with no matching column
    """

    table: str
    mappings: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    searchable_columns: tuple[str, ...] = ()
    display_columns: tuple[str, ...] = ()
    unmapped: tuple[str, ...] = ()


def find_best_column_match(candidates: Sequence[str], actual_columns: Sequence[str]) -> str | None:
    """Find the actual column best matching any candidate name.

    Exact case-insensitive matches win over substring matches; within each
    pass, candidates are tried in order.

    Returns:
        The actual column name (original case), or None
    """
    lowered = [(col.lower(), col) for col in actual_columns]

    for candidate in candidates:
        wanted = candidate.lower()
        for low, original in lowered:
            if low == wanted:
                return original

    for candidate in candidates:
        wanted = candidate.lower()
        for low, original in lowered:
            if wanted in low or low in wanted:
                return original

    return None


def _dedupe(items: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


class ColumnMappingResolver:
    """Resolves assumed logical schemas against discovered tables."""

    def __init__(self, assumed_schemas: Mapping[str, AssumedSchema] | None = None) -> None:
        """Initialize the resolver.

        Args:
            assumed_schemas: Optional override of the built-in assumed schemas,
                keyed by lowercase table name
        """
        self._assumed = assumed_schemas
        self._cache: dict[str, tuple[int, ColumnMapping]] = {}

    def assumed_for(self, table: str) -> AssumedSchema | None:
        if self._assumed is not None:
            return self._assumed.get(table.lower())
        return assumed_schema_for(table)

    def resolve(self, table_schema: TableSchema, assumed: AssumedSchema | None) -> ColumnMapping:
        """Build a ColumnMapping for a table.

        Args:
            table_schema: Discovered table structure
            assumed: Logical field -> candidate column names, or None

        Returns:
            A new ColumnMapping
        """
        table = table_schema.name
        text_columns = [
            c.name
            for c in table_schema.columns
            if c.is_text and not is_identifier_name(c.name)
        ]

        if not assumed:
            # No assumed schema: every text-like column is searchable and displayable.
            return ColumnMapping(
                table=table,
                searchable_columns=tuple(text_columns),
                display_columns=tuple(text_columns),
            )

        actual_columns = table_schema.column_names
        mappings: dict[str, str] = {}
        searchable: list[str] = []
        display: list[str] = []
        unmapped: list[str] = []

        for logical_name, candidates in assumed.items():
            actual = find_best_column_match(candidates, actual_columns)
            if actual is None:
                _logger.warning("No matching column found for %s.%s", table, logical_name)
                unmapped.append(logical_name)
                continue

            mappings[logical_name] = actual
            descriptor = table_schema.column(actual)
            if descriptor is not None and descriptor.is_text:
                searchable.append(actual)
            if any(key in logical_name.lower() for key in PRIMARY_DISPLAY_FIELDS):
                display.append(actual)

        # Unmapped but clearly textual columns stay searchable.
        searchable.extend(col for col in text_columns if col not in searchable)

        return ColumnMapping(
            table=table,
            mappings=MappingProxyType(mappings),
            searchable_columns=_dedupe(searchable),
            display_columns=_dedupe(display),
            unmapped=tuple(unmapped),
        )

    def mapping_for(self, schema: DatabaseSchema, table: str) -> ColumnMapping | None:
        """Return the cached mapping for a table in a snapshot, resolving on demand.

        Returns:
            ColumnMapping, or None when the table is not in the snapshot
        """
        table_schema = schema.tables.get(table)
        if table_schema is None:
            return None

        cached = self._cache.get(table)
        if cached is not None and cached[0] == schema.version:
            return cached[1]

        mapping = self.resolve(table_schema, self.assumed_for(table))
        self._cache[table] = (schema.version, mapping)
        return mapping
