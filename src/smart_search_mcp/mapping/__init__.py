"""Column mapping between assumed logical fields and discovered columns."""

from .assumed_schemas import ASSUMED_SCHEMAS, PRIMARY_DISPLAY_FIELDS, assumed_schema_for
from .resolver import ColumnMapping, ColumnMappingResolver, find_best_column_match

__all__ = [
    "ASSUMED_SCHEMAS",
    "PRIMARY_DISPLAY_FIELDS",
    "ColumnMapping",
    "ColumnMappingResolver",
    "assumed_schema_for",
    "find_best_column_match",
]
