"""Query orchestrator: the entry point of the search engine.

A request moves through Analyzing, Validating, Searching (with retry),
Merging and Formatting. Every failure is converted into a structured
``SmartSearchResult``; no exception reaches the caller.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import threading
import time

from fastmcp.utilities.logging import get_logger

from smart_search_mcp.exceptions import InputValidationError, SearchCancelledError
from smart_search_mcp.introspection.introspector import SchemaIntrospector
from smart_search_mcp.models import (
    QueryErrorInfo,
    SchemaRefreshResult,
    SmartSearchResult,
    TableAvailability,
)
from smart_search_mcp.query.builder import AdaptiveQueryBuilder
from smart_search_mcp.query.models import QueryResult
from smart_search_mcp.validation.errors import ErrorClassifier, ErrorContext, QueryError
from smart_search_mcp.validation.validator import InputValidator

from .formatting import no_results_message, templated_summary, validation_message
from .heuristics import fallback_analysis
from .merging import MergedRow, merge_results
from .reasoning import IntentAnalysis, ReasoningCollaborator, coerce_intent
from .state import RequestState, SearchPhase

_logger = get_logger(__name__)

DEFAULT_RETRY_ATTEMPTS = 3
MAX_QUERY_LOG_CHARS = 100

SleepFn = Callable[[float], None]


def _check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        msg = "search cancelled by caller"
        raise SearchCancelledError(msg)


def _preview(query: str) -> str:
    return query[:MAX_QUERY_LOG_CHARS] + ("..." if len(query) > MAX_QUERY_LOG_CHARS else "")


class QueryOrchestrator:
    """Turns a natural-language request into a structured search outcome.

    Attributes:
        introspector: Owner of the cached schema snapshot
        builder: Adaptive query builder driving the per-table cascade
        reasoner: Optional reasoning collaborator; heuristics are used when None
        retry_attempts: Total search attempts, first attempt included
    """

    def __init__(  # noqa: PLR0913
        self,
        introspector: SchemaIntrospector,
        builder: AdaptiveQueryBuilder,
        *,
        reasoner: ReasoningCollaborator | None = None,
        validator: InputValidator | None = None,
        classifier: ErrorClassifier | None = None,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        sleep: SleepFn | None = None,
    ) -> None:
        self.introspector = introspector
        self.builder = builder
        self.reasoner = reasoner
        self.validator = validator or InputValidator()
        self.classifier = classifier or ErrorClassifier()
        self.retry_attempts = max(1, retry_attempts)
        self._sleep = sleep

    # ---- public API --------------------------------------------------------
    def smart_search(
        self, query: str, *, cancel: threading.Event | None = None
    ) -> SmartSearchResult:
        """Search the database for a natural-language query.

        Args:
            query: The user's natural-language request
            cancel: Optional cancellation token; when set the request stops at
                the next stage boundary and returns a failed outcome

        Returns:
            SmartSearchResult; never raises
        """
        state = RequestState()
        _logger.info("smart_search: %s", _preview(query))
        try:
            return self._run(query, state, cancel)
        except Exception as exc:  # noqa: BLE001 - orchestrator boundary
            return self._failure(exc, query, state)

    def refresh_schema(self, *, force: bool = True) -> SchemaRefreshResult:
        """Re-read the catalog and report whether it succeeded."""
        snapshot = self.introspector.discover(force_refresh=force)
        error = self.introspector.last_refresh_error
        return SchemaRefreshResult(
            refreshed=error is None,
            table_count=len(snapshot.tables),
            version=snapshot.version,
            error=error,
        )

    def get_available_tables(self) -> dict[str, TableAvailability]:
        schema = self.introspector.discover()
        return {
            name: TableAvailability(
                searchable_columns=list(table.searchable_columns),
                column_count=len(table.columns),
                has_full_text=table.has_full_text_capability,
            )
            for name, table in sorted(schema.tables.items())
        }

    # ---- stages --------------------------------------------------------------
    def _run(
        self, query: str, state: RequestState, cancel: threading.Event | None
    ) -> SmartSearchResult:
        state.enter(SearchPhase.ANALYZING)
        _check_cancelled(cancel)
        analysis = self.analyze(query)
        _logger.info(
            "Query analysis: %s (confidence: %.2f)", analysis.intent_type, analysis.confidence
        )

        state.enter(SearchPhase.VALIDATING)
        _check_cancelled(cancel)
        validation = self.validator.validate_search_input(
            analysis.search_terms, analysis.intent_type
        )
        state.warnings.extend(validation.warnings)
        if not validation.ok:
            return self._validation_failure(query, analysis, validation.errors, state)

        state.enter(SearchPhase.SEARCHING)
        terms = list(validation.sanitized_terms)
        intent_type = validation.intent_type
        results = self._search_with_retry(terms, intent_type, state, cancel)
        if self.introspector.last_refresh_error is not None:
            state.warnings.append(
                "Schema refresh failed; results are based on the last known schema"
            )
        for result in results:
            if result.error is not None and not result.has_rows:
                state.warnings.append(
                    f"Skipped table {result.table}: {self.classifier.user_message(result.error)}"
                )

        state.enter(SearchPhase.MERGING)
        _check_cancelled(cancel)
        merged = merge_results(results)

        state.enter(SearchPhase.FORMATTING)
        if merged:
            summary = self._summarize(merged, query, intent_type)
        else:
            summary = no_results_message(query, intent_type)

        state.enter(SearchPhase.DONE)
        _logger.info(
            "smart_search done: %d results from %d tables in %d attempt(s)",
            len(merged),
            len(results),
            state.attempts,
        )
        return SmartSearchResult(
            query=query,
            status="ok" if merged else "no_results",
            results=[row.to_hit() for row in merged],
            summary_text=summary,
            data_used=bool(merged),
            reasoning=analysis.reasoning,
            intent_type=intent_type,
            confidence=analysis.confidence,
            elapsed_ms=state.elapsed_ms,
            tables_searched=[r.table for r in results],
            attempts=state.attempts,
            warnings=state.warnings,
        )

    def analyze(self, query: str) -> IntentAnalysis:
        """Classify intent via the collaborator, falling back to heuristics."""
        if self.reasoner is None:
            return fallback_analysis(query)
        try:
            raw = self.reasoner.classify_intent(query, self.introspector.schema_summary())
        except Exception:  # noqa: BLE001 - collaborator is best-effort
            _logger.debug("Intent classification failed; using keyword heuristics", exc_info=True)
            return fallback_analysis(query)

        analysis = coerce_intent(raw)
        if analysis is None:
            _logger.warning("Malformed intent analysis from collaborator; using keyword heuristics")
            return fallback_analysis(query)
        return analysis

    def _recoverable_failure(self, results: Sequence[QueryResult]) -> QueryError | None:
        """First error when every table failed recoverably and none returned rows."""
        if not results:
            return None
        errors = [r.error for r in results if not r.has_rows]
        if len(errors) != len(results):
            return None
        if any(e is None or not self.classifier.is_recoverable(e) for e in errors):
            return None
        return errors[0]

    def _search_with_retry(
        self,
        terms: list[str],
        intent_type: str,
        state: RequestState,
        cancel: threading.Event | None,
    ) -> list[QueryResult]:
        results: list[QueryResult] = []
        for attempt in range(1, self.retry_attempts + 1):
            _check_cancelled(cancel)
            state.attempts = attempt
            try:
                results = self.builder.execute_search(terms, intent_type, cancel=cancel)
            except SearchCancelledError:
                raise
            except Exception as exc:  # noqa: BLE001 - classified below, re-raised if final
                failure = self.classifier.classify(exc, ErrorContext(query=" ".join(terms)))
                if not self.classifier.is_recoverable(failure) or attempt == self.retry_attempts:
                    raise
            else:
                failure = self._recoverable_failure(results)
                if failure is None or attempt == self.retry_attempts:
                    return results

            delay = self.classifier.retry_delay(failure, attempt)
            _logger.info(
                "Retrying search in %.1fs after %s error (attempt %d/%d)",
                delay,
                failure.kind.value,
                attempt + 1,
                self.retry_attempts,
            )
            self._pause(delay, cancel)
        return results

    def _pause(self, delay: float, cancel: threading.Event | None) -> None:
        if delay <= 0:
            return
        if self._sleep is not None:
            self._sleep(delay)
        elif cancel is not None:
            cancel.wait(delay)
        else:
            time.sleep(delay)

    def _summarize(self, merged: list[MergedRow], query: str, intent_type: str) -> str:
        records = [row.record for row in merged]
        if self.reasoner is None:
            return templated_summary(records, query)
        try:
            text = self.reasoner.summarize(records, query, intent_type)
        except Exception:  # noqa: BLE001 - collaborator is best-effort
            _logger.debug("Summary generation failed; using template", exc_info=True)
            return templated_summary(records, query)
        if not isinstance(text, str) or not text.strip():
            return templated_summary(records, query)
        return text.strip()

    # ---- terminal outcomes -------------------------------------------------
    def _validation_failure(
        self,
        query: str,
        analysis: IntentAnalysis,
        errors: Sequence[str],
        state: RequestState,
    ) -> SmartSearchResult:
        error = self.classifier.classify(
            InputValidationError("; ".join(errors)), ErrorContext(query=query)
        )
        state.enter(SearchPhase.DONE)
        _logger.info("smart_search rejected input: %s", "; ".join(errors))
        return SmartSearchResult(
            query=query,
            status="validation_error",
            summary_text=validation_message(),
            data_used=False,
            reasoning="Input validation failed",
            intent_type=analysis.intent_type,
            confidence=analysis.confidence,
            elapsed_ms=state.elapsed_ms,
            attempts=state.attempts,
            warnings=[*state.warnings, *errors],
            error=QueryErrorInfo(kind=error.kind.value, message=self.classifier.user_message(error)),
        )

    def _failure(self, exc: Exception, query: str, state: RequestState) -> SmartSearchResult:
        failed_in = state.phase
        state.phase = SearchPhase.FAILED
        error = self.classifier.classify(exc, ErrorContext(query=query))
        if isinstance(exc, SearchCancelledError):
            _logger.info("smart_search cancelled during %s", failed_in.name.lower())
        else:
            _logger.exception("smart_search failed during %s", failed_in.name.lower())
        message = self.classifier.user_message(error)
        return SmartSearchResult(
            query=query,
            status="failed",
            summary_text=message,
            data_used=False,
            reasoning=f"Error: {error.kind.value} during {failed_in.name.lower()}",
            intent_type="error",
            elapsed_ms=state.elapsed_ms,
            attempts=state.attempts,
            warnings=[*state.warnings, f"Error occurred: {message}"],
            error=QueryErrorInfo(kind=error.kind.value, message=message),
        )
