"""smart-search-mcp package: schema-adaptive search over relational databases.

Provides Model Context Protocol (FastMCP) server capabilities for answering
natural-language requests against databases whose tables and columns are
only known at runtime.
"""

from smart_search_mcp.models import (
    QueryErrorInfo,
    ResultProvenance,
    SchemaRefreshResult,
    SearchHit,
    SmartSearchResult,
    TableAvailability,
)
from smart_search_mcp.services import ConfigService

__all__ = [  # noqa: RUF022
    # Result models
    "QueryErrorInfo",
    "ResultProvenance",
    "SchemaRefreshResult",
    "SearchHit",
    "SmartSearchResult",
    "TableAvailability",
    # Services
    "ConfigService",
]
