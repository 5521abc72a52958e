"""Services package for smart-search-mcp.

Main Components:
- ConfigService: Configuration and database connection management
- LLMConfig: Reasoning collaborator settings

`SearchServiceManager` lives in `services.search_service_manager` and is
imported from there to keep this package free of orchestrator imports.
"""

from .config_service import ConfigService, LLMConfig

__all__ = [
    "ConfigService",
    "LLMConfig",
]
