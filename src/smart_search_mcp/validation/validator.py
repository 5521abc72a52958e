"""Input validation and sanitization.

All free-text search input and every table/column identifier passes through
here before it reaches the query builder. Sanitization is applied
repeatedly until the term is stable, so removing one forbidden sequence can
never assemble another (``-'-`` does not become ``--``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Final

MAX_TERM_LENGTH: Final[int] = 100
MAX_TERMS: Final[int] = 10
MAX_IDENTIFIER_LENGTH: Final[int] = 63
DEFAULT_INTENT: Final[str] = "general"

IDENTIFIER_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z][a-z0-9_]{0,62}$")
_NAME_CHARS_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z][a-z0-9_]*$")

# Removed from search terms; multi-character sequences before their parts.
FORBIDDEN_SEQUENCES: Final[tuple[str, ...]] = ("--", "/*", "*/", "'", '"', "`", "\\", ";", "\x00")

RESERVED_KEYWORDS: Final[frozenset[str]] = frozenset(
    {
        "select",
        "insert",
        "update",
        "delete",
        "drop",
        "create",
        "alter",
        "truncate",
        "table",
        "index",
        "view",
        "function",
        "procedure",
        "trigger",
        "user",
        "role",
        "grant",
        "revoke",
        "commit",
        "rollback",
        "union",
        "where",
        "from",
    }
)


@dataclass(frozen=True, slots=True)
class SearchInputValidation:
    """Outcome of validate_search_input."""

    ok: bool
    sanitized_terms: tuple[str, ...] = ()
    intent_type: str = DEFAULT_INTENT
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class IdentifierValidation:
    """Outcome of validate_identifier."""

    ok: bool
    sanitized: str | None = None
    errors: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ColumnNamesValidation:
    """Outcome of validate_column_names.

    ``sanitized`` holds the accepted names in their original spelling so they
    can still be matched against reflected columns.
    """

    ok: bool
    sanitized: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)


def sanitize_term(term: str) -> str:
    """Strip dangerous sequences from a single search term and cap its length."""
    cleaned = term
    while True:
        previous = cleaned
        for seq in FORBIDDEN_SEQUENCES:
            cleaned = cleaned.replace(seq, "")
        if cleaned == previous:
            break
    return cleaned.strip()[:MAX_TERM_LENGTH].strip()


def coerce_intent_type(intent_type: object) -> str:
    """Lower-case and trim an intent type, defaulting to ``general``."""
    if not isinstance(intent_type, str):
        return DEFAULT_INTENT
    coerced = intent_type.strip().lower()
    return coerced or DEFAULT_INTENT


class InputValidator:
    """Validates search input and SQL identifiers."""

    def validate_search_input(
        self, terms: object, intent_type: object = None
    ) -> SearchInputValidation:
        """Validate and sanitize search terms.

        Args:
            terms: Candidate search terms; must be a list or tuple of strings
            intent_type: Intent label; coerced to a lower-case string

        Returns:
            SearchInputValidation with at most ten sanitized terms when ok
        """
        errors: list[str] = []
        warnings: list[str] = []
        intent = coerce_intent_type(intent_type)
        if intent_type is not None and not isinstance(intent_type, str):
            warnings.append("Query type should be a string; using default type")

        if not isinstance(terms, list | tuple):
            errors.append("Search terms must be provided as a list of strings")
            return SearchInputValidation(ok=False, intent_type=intent, errors=tuple(errors))

        if len(terms) == 0:
            errors.append("At least one search term must be provided")
            return SearchInputValidation(ok=False, intent_type=intent, errors=tuple(errors))

        non_strings = [t for t in terms if not isinstance(t, str)]
        if non_strings:
            warnings.append(f"Ignored {len(non_strings)} search terms that were not strings")

        sanitized: list[str] = []
        truncated = 0
        for term in terms:
            if not isinstance(term, str):
                continue
            if len(term.strip()) > MAX_TERM_LENGTH:
                truncated += 1
            cleaned = sanitize_term(term)
            if cleaned:
                sanitized.append(cleaned)

        if not sanitized:
            errors.append("No valid search terms found after sanitization")
            return SearchInputValidation(
                ok=False, intent_type=intent, errors=tuple(errors), warnings=tuple(warnings)
            )

        if truncated:
            warnings.append(
                f"Some search terms are very long and have been truncated: {truncated} terms"
            )
        if len(sanitized) > MAX_TERMS:
            warnings.append(f"Too many search terms provided; using first {MAX_TERMS} terms only")

        return SearchInputValidation(
            ok=True,
            sanitized_terms=tuple(sanitized[:MAX_TERMS]),
            intent_type=intent,
            errors=(),
            warnings=tuple(warnings),
        )

    def validate_identifier(self, name: object) -> IdentifierValidation:
        """Validate a table or column identifier.

        The lower-cased, trimmed name must match ``^[a-z][a-z0-9_]{0,62}$`` and
        must not be a reserved keyword.
        """
        if not isinstance(name, str) or not name.strip():
            return IdentifierValidation(ok=False, errors=("Identifier must be a non-empty string",))

        sanitized = name.strip().lower()
        if not _NAME_CHARS_PATTERN.match(sanitized):
            return IdentifierValidation(
                ok=False,
                errors=(
                    "Identifier contains invalid characters "
                    "(only letters, numbers, and underscores allowed)",
                ),
            )
        if not IDENTIFIER_PATTERN.match(sanitized):
            return IdentifierValidation(
                ok=False,
                errors=(f"Identifier is too long (maximum {MAX_IDENTIFIER_LENGTH} characters)",),
            )
        if sanitized in RESERVED_KEYWORDS:
            return IdentifierValidation(
                ok=False, errors=(f"Identifier '{sanitized}' is a reserved keyword",)
            )
        return IdentifierValidation(ok=True, sanitized=sanitized)

    def validate_column_names(self, names: object) -> ColumnNamesValidation:
        """Filter a list of column names down to valid identifiers.

        Invalid names are skipped with a warning; names over 63 characters are
        skipped as well since a truncated name would not match a real column.
        """
        if not isinstance(names, list | tuple):
            return ColumnNamesValidation(
                ok=False, errors=("Column names must be provided as a list",)
            )

        accepted: list[str] = []
        warnings: list[str] = []
        for col in names:
            if not isinstance(col, str) or not col.strip():
                warnings.append("Skipping invalid column name (not a string)")
                continue
            lowered = col.strip().lower()
            if not _NAME_CHARS_PATTERN.match(lowered):
                warnings.append(f"Skipping invalid column name: {col}")
                continue
            if len(lowered) > MAX_IDENTIFIER_LENGTH:
                warnings.append(f"Skipping column name longer than {MAX_IDENTIFIER_LENGTH}: {col}")
                continue
            accepted.append(col.strip())

        if not accepted:
            return ColumnNamesValidation(
                ok=False, errors=("No valid column names found",), warnings=tuple(warnings)
            )
        return ColumnNamesValidation(ok=True, sanitized=tuple(accepted), warnings=tuple(warnings))

