"""Input validation and error classification."""

from .errors import ErrorClassifier, ErrorContext, ErrorKind, QueryError
from .validator import (
    ColumnNamesValidation,
    IdentifierValidation,
    InputValidator,
    SearchInputValidation,
    coerce_intent_type,
    sanitize_term,
)

__all__ = [
    "ColumnNamesValidation",
    "ErrorClassifier",
    "ErrorContext",
    "ErrorKind",
    "IdentifierValidation",
    "InputValidator",
    "QueryError",
    "SearchInputValidation",
    "coerce_intent_type",
    "sanitize_term",
]
