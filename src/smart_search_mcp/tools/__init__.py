"""MCP tool registration for smart-search-mcp."""

from .mcp_tools import register_search_tools

__all__ = ["register_search_tools"]
