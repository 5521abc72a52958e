"""Custom exception hierarchy for smart-search-mcp.

Exceptions are raised inside components and converted to structured
``QueryError`` values at component boundaries. Only the orchestrator is
guaranteed to catch everything.

Exception Categories:
- Base exception for all search engine errors
- Reflection errors for catalog/introspection failures
- Input validation errors for rejected identifiers and search input
- Cancellation of an abandoned request
"""

from __future__ import annotations


class SmartSearchError(Exception):
    """Base exception for smart-search-mcp operations."""


class ReflectionError(SmartSearchError):
    """Raised when the database catalog cannot be read at all.

    Per-table failures are not reported with this exception; the introspector
    skips those tables and keeps going.
    """


class InputValidationError(SmartSearchError):
    """Raised when a table/column identifier or search input is rejected."""


class SearchCancelledError(SmartSearchError):
    """Raised when the caller cancels a request before it completes."""
