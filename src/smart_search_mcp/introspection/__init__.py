"""Schema introspection for smart-search-mcp.

Discovers live table/column structure through SQLAlchemy reflection, caches
it as an immutable versioned snapshot, and ranks tables for a search intent.

Main Components:
- SchemaIntrospector: TTL-cached discovery and relevance ranking
- ReflectionAdapter: Catalog access with per-table failure isolation
- Data Models: ColumnDescriptor, TableSchema, DatabaseSchema
"""

from .constants import Constants, TypeCategory
from .introspector import SchemaIntrospector, build_table_schema
from .models import (
    EMPTY_SCHEMA,
    ColumnDescriptor,
    DatabaseSchema,
    IntrospectorConfig,
    TableSchema,
)
from .reflection import ReflectionAdapter

__all__ = [
    "EMPTY_SCHEMA",
    "ColumnDescriptor",
    "Constants",
    "DatabaseSchema",
    "IntrospectorConfig",
    "ReflectionAdapter",
    "SchemaIntrospector",
    "TableSchema",
    "TypeCategory",
    "build_table_schema",
]
