"""Database catalog reflection adapter.

This module provides the ReflectionAdapter class that reads table and column
metadata through SQLAlchemy's inspector. It reports per-table failures by
skipping the table and only raises when the catalog itself is unreachable.

Classes:
- ReflectionAdapter: Main class for catalog reflection
"""

from __future__ import annotations

from typing import Any

from fastmcp.utilities.logging import get_logger
import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.engine.reflection import Inspector

from smart_search_mcp.exceptions import ReflectionError

from .utils import apply_statement_timeout

_logger = get_logger(__name__)


class ReflectionAdapter:
    """Adapter for database catalog reflection using SQLAlchemy.

    Attributes:
        engine: SQLAlchemy engine for database connections
        schema: Optional schema name; the dialect default is used when None
    """

    def __init__(
        self,
        engine: Engine,
        schema: str | None = None,
        *,
        reflect_timeout_sec: int | None = None,
    ) -> None:
        """Initialize the reflection adapter.

        Args:
            engine: SQLAlchemy engine connected to the database
            schema: Optional schema name to reflect
            reflect_timeout_sec: Per-connection statement timeout for catalog queries
        """
        self.engine = engine
        self.schema = schema
        self._reflect_timeout_sec = reflect_timeout_sec

    def list_tables(self, inspector: Inspector) -> list[str]:
        """List user-visible base tables (views are not included)."""
        return list(inspector.get_table_names(schema=self.schema))

    def reflect_table(self, inspector: Inspector, table: str) -> dict[str, Any]:
        """Reflect the columns and primary key of a single table.

        Returns:
            Dictionary with structure:
            {"columns": [{"name", "type", "nullable"}, ...], "pk": [...]}
        """
        columns_metadata = inspector.get_columns(table, schema=self.schema)

        try:
            pk_constraint = inspector.get_pk_constraint(table, schema=self.schema)
            primary_key_columns = pk_constraint.get("constrained_columns", []) or []
        except Exception as e:  # noqa: BLE001 - Continue without PK info
            _logger.debug("Cannot get PK for %s: %s", table, e)
            primary_key_columns = []

        return {
            "columns": [
                {
                    "name": col["name"],
                    "type": col["type"],
                    "nullable": col.get("nullable", True),
                }
                for col in columns_metadata
            ],
            "pk": list(primary_key_columns),
        }

    def reflect(self) -> dict[str, dict[str, Any]]:
        """Reflect every base table in the configured schema.

        Tables whose columns cannot be read are skipped with a warning; a
        partial payload is an acceptable outcome.

        Returns:
            Mapping from table name to the ``reflect_table`` payload

        Raises:
            ReflectionError: If the table list itself cannot be read
        """
        payload: dict[str, dict[str, Any]] = {}

        try:
            with self.engine.connect() as conn:
                apply_statement_timeout(conn, self._reflect_timeout_sec)
                local_insp: Inspector = sa.inspect(conn)
                tables = self.list_tables(local_insp)
                _logger.info("Found %d candidate tables", len(tables))

                for table in tables:
                    _logger.debug("Reflecting table: %s", table)
                    try:
                        payload[table] = self.reflect_table(local_insp, table)
                    except Exception as e:  # noqa: BLE001 - Skip table on any database error
                        _logger.warning("Cannot get columns for %s: %s", table, e)
                        continue
        except Exception as e:
            if payload:
                # Connection dropped mid-loop: keep what was reflected.
                _logger.warning(
                    "Reflection interrupted after %d tables: %s", len(payload), e
                )
                return payload
            error_msg = f"Failed to list database tables: {e}"
            raise ReflectionError(error_msg) from e

        return payload
