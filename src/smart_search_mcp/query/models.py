"""Row and per-table result types for the adaptive query builder."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import re

from smart_search_mcp.validation.errors import QueryError

Scalar = str | int | float | bool | None


def to_scalar(val: object, max_chars: int) -> Scalar:
    """Convert a cell value to a JSON-safe scalar, truncating long text."""
    if val is None:
        return None
    if isinstance(val, int | float | bool):
        return val
    if isinstance(val, bytes | bytearray | memoryview):
        return f"<{len(bytes(val))} bytes>"
    s = val.isoformat() if hasattr(val, "isoformat") else str(val)
    if len(s) > max_chars:
        return s[: max_chars - 1] + "…"
    return s


@dataclass(frozen=True, slots=True)
class Record:
    """One row from an arbitrary table.

    Attributes:
        table: Table the row was read from
        fields: Column name -> scalar value, in column order
    """

    table: str
    fields: Mapping[str, Scalar]

    @classmethod
    def from_mapping(cls, table: str, row: Mapping[str, object], max_chars: int) -> Record:
        return cls(table=table, fields={str(k): to_scalar(v, max_chars) for k, v in row.items()})

    def find_field(self, pattern: str) -> str | None:
        """Return the first field name matching a case-insensitive regex."""
        rx = re.compile(pattern, re.IGNORECASE)
        return next((name for name in self.fields if rx.search(name)), None)

    def text_of(self, pattern: str) -> str | None:
        """Return the string value of the first field matching ``pattern``."""
        name = self.find_field(pattern)
        if name is None:
            return None
        value = self.fields[name]
        return value if isinstance(value, str) and value else None

    def identifier(self) -> Scalar:
        """Explicit id/uuid value, if present."""
        for key in ("id", "uuid"):
            value = self.fields.get(key)
            if value is not None and value != "":
                return value
        return None


@dataclass(slots=True)
class QueryResult:
    """Outcome of searching a single table.

    Attributes:
        table: Table searched
        rows: Rows returned by the first strategy that produced any
        search_terms_used: Sanitized terms given to the search
        columns_searched: Columns the predicates were applied to
        elapsed_ms: Wall time spent on this table
        strategy: Name of the strategy that produced the rows
        error: Most recent classified failure on this table, if any
    """

    table: str
    rows: list[Record] = field(default_factory=list)
    search_terms_used: list[str] = field(default_factory=list)
    columns_searched: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0
    strategy: str | None = None
    error: QueryError | None = None

    @property
    def has_rows(self) -> bool:
        return bool(self.rows)

