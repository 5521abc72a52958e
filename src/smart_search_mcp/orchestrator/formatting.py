"""Deterministic text for search outcomes.

Rows come from unknown tables, so descriptions are chosen by capability
checks on field names ("has a field matching /title/") rather than by type.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from smart_search_mcp.query.models import Record

DESCRIBE_LIMIT: Final[int] = 8
TEMPLATE_LIMIT: Final[int] = 5
MIN_GENERIC_TEXT: Final[int] = 10

_SUGGESTIONS: Final[dict[str, str]] = {
    "knowledge_search": "Try searching for more general topics or check the main categories.",
    "chat_search": "Try looking for specific conversation topics or time periods.",
    "news_search": "Try a broader topic or a different time period.",
    "piano_search": "Try an artist name, a piano title or a location.",
}
_DEFAULT_SUGGESTION: Final[str] = "Try using different keywords or being more specific."


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit].rstrip() + "..."


def record_label(record: Record) -> str:
    """Short human-readable label for a row."""
    title = record.text_of("title")
    content = record.text_of("content|body|excerpt|description")
    if title and content:
        return f"{title} - {_clip(content, 150)}"
    if title:
        return title

    name = record.text_of("name")
    if name:
        return name

    message = record.text_of("message")
    reply = record.text_of("reply|response")
    if message and reply:
        return f'Chat: "{_clip(message, 100)}"'

    for value in record.fields.values():
        if isinstance(value, str) and len(value) > MIN_GENERIC_TEXT:
            return _clip(value, 100)
    return f"Record from {record.table}"


def describe_records(records: Sequence[Record], limit: int = DESCRIBE_LIMIT) -> str:
    """Numbered list of row labels used as grounding for the summary."""
    return "\n".join(
        f"{i}. {record_label(r)} (from {r.table})" for i, r in enumerate(records[:limit], start=1)
    )


def templated_summary(records: Sequence[Record], query: str) -> str:
    """Fallback summary when the reasoning collaborator cannot produce one."""
    count = len(records)
    sources = sorted({r.table for r in records})
    source_text = f" from {len(sources)} sources" if len(sources) > 1 else f" in {sources[0]}"
    labels = "; ".join(record_label(r) for r in records[:TEMPLATE_LIMIT])
    more = f" (and {count - TEMPLATE_LIMIT} more)" if count > TEMPLATE_LIMIT else ""
    noun = "result" if count == 1 else "results"
    return f'Found {count} {noun}{source_text} for "{query}": {labels}{more}.'


def no_results_message(query: str, intent_type: str) -> str:
    """Deterministic message for an empty combined result."""
    suggestion = _SUGGESTIONS.get(intent_type, _DEFAULT_SUGGESTION)
    return (
        f'I searched the database for "{query}" ({intent_type}) but could not find any '
        f"matching records. {suggestion} You can also try rephrasing your question."
    )


def validation_message() -> str:
    return (
        "I had trouble understanding your search request. "
        "Please try rephrasing your question."
    )
