"""Data models for schema introspection.

These models represent a discovered database structure. All of them are
immutable: a discovery pass builds a brand-new ``DatabaseSchema`` and the
introspector swaps it in with a single reference assignment, so readers never
observe a partially built snapshot.

Models:
- ColumnDescriptor: One discovered column with its type category
- TableSchema: One discovered table with derived search capabilities
- DatabaseSchema: Versioned snapshot of every discovered table
- IntrospectorConfig: Configuration object for SchemaIntrospector
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .constants import Constants, TypeCategory


@dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    """Metadata for a single discovered column.

    Attributes:
        name: Column name as defined in the database
        type_category: Coarse type family of the declared type
        declared_type: Declared SQL type string (lowercase)
        nullable: Whether the column accepts NULL values
        is_identifier: True for primary keys and id-like columns
    """

    name: str
    type_category: TypeCategory
    declared_type: str = ""
    nullable: bool = True
    is_identifier: bool = False

    @property
    def is_text(self) -> bool:
        return self.type_category is TypeCategory.TEXT

    @property
    def is_full_text(self) -> bool:
        return any(hint in self.declared_type for hint in Constants.FULL_TEXT_TYPE_HINTS)


@dataclass(frozen=True, slots=True)
class TableSchema:
    """Discovered structure of a single table.

    Attributes:
        name: Table name (unique key within a snapshot)
        columns: Columns in ordinal order
        searchable_columns: Columns judged worth pattern-matching
        has_full_text_capability: True with >= 3 searchable columns or a
            dedicated full-text column
        discovered_at: Timestamp of the discovery pass that built this table
    """

    name: str
    columns: tuple[ColumnDescriptor, ...]
    searchable_columns: tuple[str, ...]
    has_full_text_capability: bool
    discovered_at: float

    def column(self, name: str) -> ColumnDescriptor | None:
        """Return the column descriptor with the given (case-insensitive) name."""
        lowered = name.lower()
        return next((c for c in self.columns if c.name.lower() == lowered), None)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def recency_column(self) -> str | None:
        """Return the column to order by when recent rows are preferred."""
        by_name = {c.name.lower(): c.name for c in self.columns}
        for candidate in Constants.RECENCY_COLUMNS:
            if candidate in by_name:
                return by_name[candidate]
        temporal = next(
            (c for c in self.columns if c.type_category is TypeCategory.TEMPORAL), None
        )
        return temporal.name if temporal else None


def _frozen_tables(tables: Mapping[str, TableSchema]) -> Mapping[str, TableSchema]:
    return MappingProxyType(dict(tables))


@dataclass(frozen=True, slots=True)
class DatabaseSchema:
    """Versioned, read-only snapshot of discovered tables.

    Attributes:
        tables: Mapping from table name to TableSchema
        last_updated: Timestamp of the discovery pass (0.0 when never built)
        version: Incremented on each successful discovery; 0 for the empty
            snapshot
    """

    tables: Mapping[str, TableSchema] = field(default_factory=lambda: MappingProxyType({}))
    last_updated: float = 0.0
    version: int = 0

    @classmethod
    def build(
        cls, tables: Mapping[str, TableSchema], *, last_updated: float, version: int
    ) -> DatabaseSchema:
        return cls(tables=_frozen_tables(tables), last_updated=last_updated, version=version)

    @property
    def is_empty(self) -> bool:
        return not self.tables


EMPTY_SCHEMA = DatabaseSchema()


@dataclass
class IntrospectorConfig:
    """Configuration object for SchemaIntrospector initialization.

    Attributes:
        schema: Optional database schema to introspect (dialect default when None)
        ttl_sec: How long a discovered snapshot is served from cache
        statement_timeout_sec: Per-connection timeout applied to catalog queries
        max_relevant_tables: Cap on find_relevant_tables output
    """

    schema: str | None = None
    ttl_sec: float = Constants.DEFAULT_SCHEMA_TTL_SEC
    statement_timeout_sec: int = Constants.DEFAULT_TIMEOUT_SEC
    max_relevant_tables: int = Constants.MAX_RELEVANT_TABLES
