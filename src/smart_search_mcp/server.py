"""FastMCP server implementation for smart-search-mcp."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import dotenv
from fastmcp import FastMCP
from fastmcp.utilities.logging import get_logger
from starlette.requests import Request
from starlette.responses import JSONResponse

from smart_search_mcp.services.search_service_manager import SearchServiceManager
from smart_search_mcp.tools.mcp_tools import register_search_tools

# Load environment variables
dotenv.load_dotenv()

_logger = get_logger(__name__)


# -- Context Manager for search service initialization -------------------
@asynccontextmanager
async def lifespan(_mcp_instance: FastMCP) -> AsyncGenerator[None]:
    """FastMCP lifespan context manager for search service initialization."""
    manager = SearchServiceManager.get_instance()
    try:
        _logger.info("Starting search service initialization in background during lifespan startup")
        manager.start_background_initialization()
        yield
    except Exception:
        _logger.exception("Error during search service initialization")
    finally:
        _logger.info("Shutting down search service during lifespan shutdown")
        await manager.shutdown()


mcp = FastMCP(
    instructions=(
        "Schema-adaptive database search. Use smart_search with a natural-language "
        "request; the server discovers tables and columns at runtime and returns "
        "deduplicated rows with provenance and a short summary."
    ),
    lifespan=lifespan,
)

# -- Tool Registration -------------------------------------------------------
register_search_tools(mcp)


# -- Health Check ----------------------------------------------------------
@mcp.custom_route("/health", methods=["GET"])
async def health_check(_request: Request) -> JSONResponse:
    status = SearchServiceManager.get_instance().status()
    return JSONResponse(
        {
            "status": "healthy",
            "service": "smart-search-mcp",
            "phase": status.phase.name.lower(),
            "tables": status.table_count,
        }
    )
