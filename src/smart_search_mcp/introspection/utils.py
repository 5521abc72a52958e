"""Utility functions for schema introspection.

Functions:
- normalize_identifier(): Convert database identifiers to normalized tokens
- tokens_from_text(): Extract normalized tokens from text
- classify_type(): Map a reflected SQLAlchemy type to a TypeCategory
- is_identifier_name(): Detect id-like column names
- has_content_hint(): Detect content-indicative column names
- apply_statement_timeout(): Best-effort per-connection statement timeout
"""

from __future__ import annotations

from collections.abc import Iterable
import re

from fastmcp.utilities.logging import get_logger
import sqlalchemy as sa
from sqlalchemy.engine import Connection

from .constants import Constants, TypeCategory

_logger = get_logger(__name__)


def normalize_identifier(name: str) -> str:
    """Normalize database identifiers to lowercase space-separated tokens.

    Example:
        >>> normalize_identifier("piano_title")
        'piano title'
        >>> normalize_identifier("PianoTitle")
        'piano title'
    """
    if not name:
        return ""

    normalized = re.sub(r"[_\-]+", " ", name)
    normalized = re.sub(r"(?<!^)(?=[A-Z])", " ", normalized)
    return re.sub(r"\s+", " ", normalized).strip().lower()


def tokens_from_text(text: str) -> list[str]:
    """Extract lowercase alphanumeric tokens from text."""
    normalized_text = normalize_identifier(text or "")
    return [token for token in re.split(r"[^a-z0-9]+", normalized_text) if token]


def _category_from_hints(declared: str) -> TypeCategory:
    if any(hint in declared for hint in Constants.STRUCTURED_TYPE_HINTS):
        return TypeCategory.STRUCTURED
    if any(hint in declared for hint in Constants.DATE_TYPE_HINTS):
        return TypeCategory.TEMPORAL
    if "bool" in declared:
        return TypeCategory.BOOLEAN
    if any(hint in declared for hint in Constants.NUMERIC_TYPE_HINTS):
        return TypeCategory.NUMERIC
    if any(hint in declared for hint in Constants.TEXT_TYPE_HINTS):
        return TypeCategory.TEXT
    return TypeCategory.UNKNOWN


def classify_type(col_type: object) -> TypeCategory:
    """Map a reflected column type to a coarse TypeCategory.

    Uses the SQLAlchemy type hierarchy when the type is a known TypeEngine,
    then falls back to substring hints on the declared type string. Accepts
    plain strings as well, which keeps the function usable with catalog rows.
    """
    # Order matters: Enum subclasses String, JSON/ARRAY are checked first.
    if isinstance(col_type, sa.JSON | sa.ARRAY):
        return TypeCategory.STRUCTURED
    if isinstance(col_type, sa.Boolean):
        return TypeCategory.BOOLEAN
    if isinstance(col_type, sa.Date | sa.DateTime | sa.Time | sa.Interval):
        return TypeCategory.TEMPORAL
    if isinstance(col_type, sa.Integer | sa.Numeric | sa.Float):
        return TypeCategory.NUMERIC
    if isinstance(col_type, sa.String):
        return TypeCategory.TEXT

    try:
        declared = str(col_type).lower()
    except Exception:  # noqa: BLE001 - some dialect types cannot render without a dialect
        declared = type(col_type).__name__.lower()
    return _category_from_hints(declared)


def declared_type_name(col_type: object) -> str:
    """Return the declared type as a lowercase string, tolerating opaque types."""
    try:
        return str(col_type).lower()
    except Exception:  # noqa: BLE001 - NullType and some custom types refuse to compile
        return type(col_type).__name__.lower()


def is_identifier_name(name: str) -> bool:
    """True for id-like column names (``id``, ``uuid``, ``*_id``)."""
    lowered = name.lower()
    return lowered in {"id", "uuid"} or lowered.endswith("_id")


def has_content_hint(name: str, hints: Iterable[str] = Constants.CONTENT_NAME_HINTS) -> bool:
    """True if the column name contains a content-indicative substring."""
    lowered = name.lower()
    return any(hint in lowered for hint in hints)


def apply_statement_timeout(conn: Connection, timeout_sec: int | None) -> None:
    """Apply a per-connection statement timeout.

    Best-effort, dialect-specific:
    - PostgreSQL: SET statement_timeout = <ms>
    - MySQL:      SET SESSION MAX_EXECUTION_TIME = <ms>
    - SQL Server: SET LOCK_TIMEOUT <ms>
    """
    if not timeout_sec or timeout_sec <= 0:
        return
    try:
        dialect = conn.dialect.name
        ms = max(1, int(timeout_sec * 1000))
        if dialect == "postgresql":
            conn.execute(sa.text(f"SET statement_timeout = {ms}"))
        elif dialect in {"mysql", "mariadb"}:
            conn.execute(sa.text(f"SET SESSION MAX_EXECUTION_TIME = {ms}"))
        elif dialect == "mssql":
            conn.execute(sa.text(f"SET LOCK_TIMEOUT {ms}"))
    except Exception as e:  # noqa: BLE001 - best-effort guard
        _logger.debug("Could not apply statement timeout: %s", e)
