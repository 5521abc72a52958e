"""Configuration service for smart-search-mcp.

Centralizes environment variable handling and database engine creation.
A ``.env`` file is loaded by the server entry point before any of these
helpers run.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

import sqlalchemy as sa

from smart_search_mcp.introspection.constants import Constants
from smart_search_mcp.introspection.models import IntrospectorConfig

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_MAX_CELL_CHARS = 500
MIN_MAX_CELL_CHARS = 20
DEFAULT_LLM_PROVIDER = "openai"
DEFAULT_LLM_TIMEOUT_SEC = 30.0


@dataclass(frozen=True)
class LLMConfig:
    """Reasoning collaborator settings."""

    provider: str
    model: str
    timeout_sec: float = DEFAULT_LLM_TIMEOUT_SEC


def _env_int(name: str, default: int) -> int:
    val = os.getenv(name, str(default))
    try:
        return int(val)
    except ValueError:
        return default


class ConfigService:
    """Service for managing configuration and database connections."""

    @staticmethod
    def get_database_url() -> str:
        """Get database URL from environment variable.

        Returns:
            Database URL string

        Raises:
            ValueError: If SMART_SEARCH_DATABASE_URL environment variable is not set
        """
        database_url = os.getenv("SMART_SEARCH_DATABASE_URL")
        if not database_url:
            error_msg = "SMART_SEARCH_DATABASE_URL environment variable not set"
            raise ValueError(error_msg)
        return database_url

    @staticmethod
    def create_database_engine(url: str) -> sa.Engine:
        """Create SQLAlchemy database engine.

        Args:
            url: Database connection URL

        Returns:
            SQLAlchemy Engine instance
        """
        return sa.create_engine(url, pool_pre_ping=True)

    @staticmethod
    def get_db_schema() -> str | None:
        """Optional database schema to search; the dialect default when unset."""
        return os.getenv("SMART_SEARCH_DB_SCHEMA") or None

    @staticmethod
    def schema_ttl_sec() -> int:
        """Schema cache TTL, clamped to 5..30 minutes."""
        ttl = _env_int("SMART_SEARCH_SCHEMA_TTL_SEC", Constants.DEFAULT_SCHEMA_TTL_SEC)
        return min(Constants.MAX_SCHEMA_TTL_SEC, max(Constants.MIN_SCHEMA_TTL_SEC, ttl))

    @staticmethod
    def statement_timeout_sec() -> int:
        """Per-statement timeout for catalog and data queries."""
        n = _env_int("SMART_SEARCH_STATEMENT_TIMEOUT_SEC", Constants.DEFAULT_TIMEOUT_SEC)
        return max(1, n)

    @staticmethod
    def retry_attempts() -> int:
        """Total search attempts per request, first attempt included."""
        return max(1, _env_int("SMART_SEARCH_RETRY_ATTEMPTS", DEFAULT_RETRY_ATTEMPTS))

    @staticmethod
    def result_max_cell_chars() -> int:
        """Maximum characters per cell value in results."""
        n = _env_int("SMART_SEARCH_MAX_CELL_CHARS", DEFAULT_MAX_CELL_CHARS)
        return max(MIN_MAX_CELL_CHARS, n)

    @staticmethod
    def get_introspector_config() -> IntrospectorConfig:
        return IntrospectorConfig(
            schema=ConfigService.get_db_schema(),
            ttl_sec=ConfigService.schema_ttl_sec(),
            statement_timeout_sec=ConfigService.statement_timeout_sec(),
        )

    # ---- LLM configuration -----------------------------------------------
    @staticmethod
    def get_llm_config() -> LLMConfig | None:
        """Reasoning collaborator settings, or None when no model is configured."""
        model = os.getenv("SMART_SEARCH_LLM_MODEL", "").strip()
        if not model:
            return None
        provider = os.getenv("SMART_SEARCH_LLM_PROVIDER", DEFAULT_LLM_PROVIDER).strip()
        val = os.getenv("SMART_SEARCH_LLM_TIMEOUT_SEC", str(DEFAULT_LLM_TIMEOUT_SEC))
        try:
            timeout = float(val)
        except ValueError:
            timeout = DEFAULT_LLM_TIMEOUT_SEC
        return LLMConfig(
            provider=provider or DEFAULT_LLM_PROVIDER,
            model=model,
            timeout_sec=timeout if timeout > 0 else DEFAULT_LLM_TIMEOUT_SEC,
        )
