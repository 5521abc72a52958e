"""Error taxonomy, classification and retry policy.

Every raw failure coming out of the datastore (or anything else below the
orchestrator) is converted into a ``QueryError`` here. The classifier then
answers three questions about it: is a retry worth it, how long to wait,
and what may be shown to an end user.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
import re
from typing import Final

from sqlalchemy.exc import DisconnectionError, SQLAlchemyError, StatementError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from smart_search_mcp.exceptions import InputValidationError, SearchCancelledError


class ErrorKind(str, Enum):
    """Failure classes with distinct retry and messaging behavior."""

    DATABASE = "database"
    VALIDATION = "validation"
    PERMISSION = "permission"
    TIMEOUT = "timeout"
    NETWORK = "network"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Where a failure happened."""

    table: str | None = None
    query: str | None = None


@dataclass(frozen=True, slots=True)
class QueryError:
    """Classified failure.

    ``message`` is internal and may contain backend text; use
    ``ErrorClassifier.user_message`` for anything shown to end users.
    """

    kind: ErrorKind
    message: str
    table: str | None = None
    query: str | None = None
    code: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


_SQLSTATE_RE: Final[re.Pattern[str]] = re.compile(r"^[0-9A-Z]{5}$")

_PERMISSION_HINTS: Final[tuple[str, ...]] = ("permission", "denied", "privilege")
_TIMEOUT_HINTS: Final[tuple[str, ...]] = ("timeout", "timed out", "canceling statement")
_NETWORK_HINTS: Final[tuple[str, ...]] = (
    "network",
    "connection",
    "could not connect",
    "server closed",
    "unreachable",
)
_TRANSIENT_DATABASE_HINTS: Final[tuple[str, ...]] = ("connection", "timeout")

BASE_DELAY_SEC: Final[float] = 1.0
MAX_DELAY_SEC: Final[float] = 30.0


def _sqlstate(raw: object) -> str | None:
    """Extract a SQLSTATE code from a DBAPI error or error-like object.

    SQLAlchemy's own ``code`` attribute is an internal doc link id, so only
    the wrapped driver error is inspected for SQLAlchemy exceptions.
    """
    sources: list[object] = []
    orig = getattr(raw, "orig", None)
    if orig is not None:
        sources.append(orig)
    sources.append(raw)

    for src in sources:
        attrs = ("pgcode", "sqlstate") if isinstance(src, SQLAlchemyError) else (
            "pgcode",
            "sqlstate",
            "code",
        )
        for attr in attrs:
            value = getattr(src, attr, None)
            if isinstance(value, str) and _SQLSTATE_RE.match(value):
                return value
    return None


def _raw_message(raw: object) -> str:
    """Driver-level message, without the SQL text and bound parameters."""
    if isinstance(raw, StatementError) and raw.orig is not None:
        return str(raw.orig) or type(raw.orig).__name__
    if isinstance(raw, BaseException):
        return str(raw) or type(raw).__name__
    message = getattr(raw, "message", None)
    if isinstance(message, str) and message:
        return message
    if isinstance(raw, dict):
        value = raw.get("message")
        if isinstance(value, str) and value:
            return value
    return str(raw) if raw is not None else ""


class ErrorClassifier:
    """Maps raw failures to the QueryError taxonomy and retry policy."""

    def classify(self, raw: object, context: ErrorContext | None = None) -> QueryError:
        """Classify a raw failure.

        Args:
            raw: Exception or error-like object (``code``/``message`` attributes
                or dict keys are honored)
            context: Offending table and query, when known

        Returns:
            A QueryError value
        """
        ctx = context or ErrorContext()
        table_label = ctx.table or "unknown"
        raw_message = _raw_message(raw)
        code = _sqlstate(raw)
        if code is None and isinstance(raw, dict):
            value = raw.get("code")
            code = value if isinstance(value, str) and _SQLSTATE_RE.match(value) else None

        def make(kind: ErrorKind, message: str) -> QueryError:
            return QueryError(
                kind=kind, message=message, table=ctx.table, query=ctx.query, code=code
            )

        if isinstance(raw, InputValidationError):
            return make(ErrorKind.VALIDATION, raw_message)
        if isinstance(raw, SearchCancelledError):
            return make(ErrorKind.TIMEOUT, f"Request cancelled: {raw_message}")

        if code is not None:
            if code == "42P01":
                return make(ErrorKind.DATABASE, f"Table '{table_label}' does not exist")
            if code == "42703":
                return make(
                    ErrorKind.DATABASE, f"Column does not exist in table '{table_label}'"
                )
            if code == "42501":
                return make(
                    ErrorKind.PERMISSION,
                    f"Insufficient permissions to access '{ctx.table or 'resource'}'",
                )
            if code == "57014":
                return make(ErrorKind.TIMEOUT, "Query was canceled due to timeout")
            if code.startswith("08"):
                return make(ErrorKind.NETWORK, "Database connection failed")
            return make(ErrorKind.DATABASE, f"Database error: {raw_message}")

        if isinstance(raw, TimeoutError | PoolTimeoutError):
            return make(ErrorKind.TIMEOUT, f"Request timed out: {raw_message}")
        if isinstance(raw, ConnectionError | DisconnectionError):
            return make(ErrorKind.NETWORK, f"Network error: {raw_message}")

        lowered = raw_message.lower()
        if "no such column" in lowered:
            return make(
                ErrorKind.DATABASE, f"Column does not exist in table '{table_label}'"
            )
        if "no such table" in lowered or "does not exist" in lowered:
            return make(ErrorKind.DATABASE, f"Table '{table_label}' does not exist")
        if any(hint in lowered for hint in _PERMISSION_HINTS):
            return make(ErrorKind.PERMISSION, f"Permission denied: {raw_message}")
        if any(hint in lowered for hint in _TIMEOUT_HINTS):
            return make(ErrorKind.TIMEOUT, f"Request timed out: {raw_message}")
        if any(hint in lowered for hint in _NETWORK_HINTS):
            return make(ErrorKind.NETWORK, f"Network error: {raw_message}")

        return make(ErrorKind.DATABASE, raw_message or "An unknown error occurred")

    def is_recoverable(self, error: QueryError) -> bool:
        """True when a retry may plausibly succeed."""
        if error.kind in {ErrorKind.TIMEOUT, ErrorKind.NETWORK}:
            return True
        if error.kind is ErrorKind.DATABASE:
            lowered = error.message.lower()
            return any(hint in lowered for hint in _TRANSIENT_DATABASE_HINTS)
        return False

    def retry_delay(self, error: QueryError, attempt: int) -> float:
        """Seconds to wait before retrying after ``attempt`` failed attempts.

        Exponential for timeouts, linear for network failures, a flat base
        delay for transient database errors, zero for anything not recoverable.
        """
        if not self.is_recoverable(error):
            return 0.0
        attempt = max(1, attempt)
        if error.kind is ErrorKind.TIMEOUT:
            return min(BASE_DELAY_SEC * (2**attempt), MAX_DELAY_SEC)
        if error.kind is ErrorKind.NETWORK:
            return min(BASE_DELAY_SEC * attempt, MAX_DELAY_SEC)
        return BASE_DELAY_SEC

    def user_message(self, error: QueryError) -> str:
        """Human-readable message that never includes backend error text."""
        if error.kind is ErrorKind.DATABASE:
            if "does not exist" in error.message:
                return (
                    "The requested information could not be found in our database. "
                    "Please try a different search term."
                )
            return "We encountered a database issue while searching. Please try again in a moment."
        if error.kind is ErrorKind.PERMISSION:
            return (
                "Access to this information is restricted. "
                "Please contact support if you believe this is an error."
            )
        if error.kind is ErrorKind.TIMEOUT:
            return (
                "Your search is taking longer than expected. "
                "Please try with more specific search terms."
            )
        if error.kind is ErrorKind.NETWORK:
            return (
                "We're having trouble connecting to our database. "
                "The service is temporarily unavailable; please try again shortly."
            )
        return (
            "I had trouble understanding your search request. "
            "Please try rephrasing your question."
        )
