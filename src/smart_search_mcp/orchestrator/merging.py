"""Combine per-table results into one deduplicated, ranked, capped list."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import hashlib
import json
from typing import Final

from smart_search_mcp.models import ResultProvenance, SearchHit
from smart_search_mcp.query.models import QueryResult, Record

MAX_COMBINED_RESULTS: Final[int] = 25
HASH_PREFIX_CHARS: Final[int] = 50


@dataclass(frozen=True, slots=True)
class MergedRow:
    """A combined row with the per-table context that produced it."""

    record: Record
    matched_terms: tuple[str, ...]
    table_elapsed_ms: float
    strategy: str | None

    def to_hit(self) -> SearchHit:
        return SearchHit(
            fields=dict(self.record.fields),
            provenance=ResultProvenance(
                source_table=self.record.table,
                matched_terms=list(self.matched_terms),
                table_elapsed_ms=self.table_elapsed_ms,
                strategy=self.strategy,
            ),
        )


def dedup_key(record: Record) -> str:
    """Derived identity of a row: its id/uuid, else a hash of its serialized prefix."""
    ident = record.identifier()
    if ident is not None:
        return f"id:{ident}"
    serialized = json.dumps(dict(record.fields), default=str, ensure_ascii=False)
    digest = hashlib.sha256(serialized[:HASH_PREFIX_CHARS].encode("utf-8")).hexdigest()
    return f"hash:{digest}"


def merge_results(
    results: Iterable[QueryResult], cap: int = MAX_COMBINED_RESULTS
) -> list[MergedRow]:
    """Merge rows across tables.

    Tables with more rows come first, then faster ones. Rows are deduplicated
    by ``dedup_key`` and the combined list is capped.
    """
    ordered = sorted(
        (r for r in results if r.has_rows), key=lambda r: (-len(r.rows), r.elapsed_ms)
    )
    seen: set[str] = set()
    merged: list[MergedRow] = []
    for result in ordered:
        for record in result.rows:
            if len(merged) >= cap:
                return merged
            key = dedup_key(record)
            if key in seen:
                continue
            seen.add(key)
            merged.append(
                MergedRow(
                    record=record,
                    matched_terms=tuple(result.search_terms_used),
                    table_elapsed_ms=result.elapsed_ms,
                    strategy=result.strategy,
                )
            )
    return merged
