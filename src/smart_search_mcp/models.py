"""Pydantic models for MCP tool I/O.

Internal components pass frozen dataclasses around; these models are the
only shapes that leave the process.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

ScalarValue = str | int | float | bool | None

SearchStatus = Literal["ok", "no_results", "validation_error", "failed"]


class QueryErrorInfo(BaseModel):
    """Safe, user-facing description of a classified failure."""

    kind: Literal["database", "validation", "permission", "timeout", "network"] = Field(
        description="Failure category"
    )
    message: str = Field(description="Human-readable message; never raw backend error text")


class ResultProvenance(BaseModel):
    """Where a combined result row came from."""

    source_table: str = Field(description="Table the row was read from")
    matched_terms: list[str] = Field(
        default_factory=list, description="Sanitized search terms used against the table"
    )
    table_elapsed_ms: float = Field(description="Time spent searching the source table")
    strategy: str | None = Field(
        default=None, description="Cascade stage that produced the row (exact/fuzzy/partial/broad)"
    )


class SearchHit(BaseModel):
    """One deduplicated row of the combined result."""

    fields: dict[str, ScalarValue] = Field(description="Column name to JSON-safe value")
    provenance: ResultProvenance


class SmartSearchResult(BaseModel):
    """Structured outcome of a natural-language search."""

    query: str = Field(description="Original natural-language query")
    status: SearchStatus = Field(description="Overall outcome of the request")
    results: list[SearchHit] = Field(
        default_factory=list, description="Deduplicated rows, at most 25"
    )
    summary_text: str = Field(description="Natural-language summary of the outcome")
    data_used: bool = Field(description="True when the summary is grounded in returned rows")
    reasoning: str = Field(default="", description="Why the intent was chosen")
    intent_type: str = Field(description="Classified intent, e.g. news_search")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Intent confidence")
    elapsed_ms: float = Field(description="Total wall time for the request")
    tables_searched: list[str] = Field(default_factory=list, description="Tables that were queried")
    attempts: int = Field(default=0, ge=0, description="Search attempts made, retries included")
    warnings: list[str] = Field(
        default_factory=list, description="Skipped tables, truncated input and similar notes"
    )
    error: QueryErrorInfo | None = Field(
        default=None, description="Set when status is validation_error or failed"
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
        description="UTC ISO8601 timestamp of completion",
    )


class TableAvailability(BaseModel):
    """Operational view of one discovered table."""

    searchable_columns: list[str] = Field(description="Columns searched by text predicates")
    column_count: int = Field(ge=0, description="Total number of columns")
    has_full_text: bool = Field(description="Whether the table is full-text capable")


class SchemaRefreshResult(BaseModel):
    """Outcome of an explicit schema refresh."""

    refreshed: bool = Field(description="True when the catalog was read successfully")
    table_count: int = Field(ge=0, description="Tables in the current snapshot")
    version: int = Field(ge=0, description="Snapshot version after the refresh")
    error: str | None = Field(default=None, description="Why the refresh failed, if it did")
