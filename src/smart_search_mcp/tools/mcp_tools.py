"""MCP tool registration for the smart search engine.

Exposes `smart_search`, `refresh_schema` and `get_available_tables`. The
orchestrator is synchronous, so each tool runs it in a worker thread via
`asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Annotated

from fastmcp import Context, FastMCP
from fastmcp.utilities.logging import get_logger
from pydantic import Field

from smart_search_mcp.models import SchemaRefreshResult, SmartSearchResult, TableAvailability
from smart_search_mcp.orchestrator.orchestrator import QueryOrchestrator
from smart_search_mcp.services.search_service_manager import SearchServiceManager

_logger = get_logger(__name__)
MAX_QUERY_DISPLAY = 100


def register_search_tools(mcp: FastMCP, manager: SearchServiceManager | None = None) -> None:
    """Register the smart search tools on the given server instance."""

    mgr = manager or SearchServiceManager.get_instance()

    async def _orchestrator(ctx: Context) -> QueryOrchestrator:
        try:
            return await mgr.get_orchestrator()
        except RuntimeError as exc:
            await ctx.error(f"Search service not ready: {exc}")
            raise

    @mcp.tool
    async def smart_search(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        query: Annotated[
            str,
            Field(
                description=(
                    "Natural-language request, e.g. 'recent news about the spring concert' "
                    "or 'pianos painted by local artists'."
                )
            ),
        ],
    ) -> SmartSearchResult:
        """Search the database for a natural-language request.

        Discovers relevant tables at runtime, runs an exact -> fuzzy -> partial -> recent
        cascade per table, and returns deduplicated rows with provenance, a summary,
        and warnings describing anything that was skipped.
        """
        preview = query[:MAX_QUERY_DISPLAY] + ("..." if len(query) > MAX_QUERY_DISPLAY else "")
        _logger.info("smart_search tool: %s", preview)

        orchestrator = await _orchestrator(ctx)
        cancel = threading.Event()
        try:
            return await asyncio.to_thread(orchestrator.smart_search, query, cancel=cancel)
        except asyncio.CancelledError:
            # Stop the worker thread at its next stage boundary.
            cancel.set()
            raise

    @mcp.tool
    async def refresh_schema(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
        *,
        force: Annotated[
            bool, Field(description="Re-read the catalog even if the cached schema is fresh")
        ] = True,
    ) -> SchemaRefreshResult:
        """Refresh the cached database schema and report whether the catalog was readable."""
        orchestrator = await _orchestrator(ctx)
        result = await asyncio.to_thread(orchestrator.refresh_schema, force=force)
        if not result.refreshed:
            await ctx.warning(f"Schema refresh failed: {result.error}")
        return result

    @mcp.tool
    async def get_available_tables(  # pyright: ignore[reportUnusedFunction]
        ctx: Context,
    ) -> dict[str, TableAvailability]:
        """List discovered tables with their searchable columns and full-text capability."""
        orchestrator = await _orchestrator(ctx)
        return await asyncio.to_thread(orchestrator.get_available_tables)

    _ = (smart_search, refresh_schema, get_available_tables)
