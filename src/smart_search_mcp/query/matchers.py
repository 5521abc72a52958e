"""Pluggable term matchers.

A matcher turns one column and one term into a boolean SQL expression. The
cascade in ``AdaptiveQueryBuilder`` only depends on this interface, so a
trigram or edit-distance matcher can replace the default substring matcher
without touching the cascade.
"""

from __future__ import annotations

from typing import Protocol

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement


class TermMatcher(Protocol):
    """Builds a predicate for one column and one term."""

    name: str

    def clause(self, column: ColumnElement[object], term: str) -> ColumnElement[bool]: ...


class ExactMatcher:
    """Equality comparison."""

    name = "exact"

    def clause(self, column: ColumnElement[object], term: str) -> ColumnElement[bool]:
        return column == term


class ContainsMatcher:
    """Case-insensitive substring match with LIKE wildcards escaped."""

    name = "fuzzy"

    def clause(self, column: ColumnElement[object], term: str) -> ColumnElement[bool]:
        return column.icontains(term, autoescape=True)


class FullTextMatcher:
    """PostgreSQL ``@@ plainto_tsquery`` match on a tsvector column."""

    name = "full_text"

    def clause(self, column: ColumnElement[object], term: str) -> ColumnElement[bool]:
        return column.op("@@")(sa.func.plainto_tsquery(term))
