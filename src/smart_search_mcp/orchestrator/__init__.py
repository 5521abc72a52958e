"""Query orchestration: intent analysis, retry, merging and formatting."""

from .heuristics import extract_simple_terms, fallback_analysis
from .merging import MAX_COMBINED_RESULTS, MergedRow, dedup_key, merge_results
from .orchestrator import QueryOrchestrator
from .reasoning import IntentAnalysis, LlmReasoner, ReasoningCollaborator, coerce_intent
from .state import RequestState, SearchPhase

__all__ = [
    "MAX_COMBINED_RESULTS",
    "IntentAnalysis",
    "LlmReasoner",
    "MergedRow",
    "QueryOrchestrator",
    "ReasoningCollaborator",
    "RequestState",
    "SearchPhase",
    "coerce_intent",
    "dedup_key",
    "extract_simple_terms",
    "fallback_analysis",
    "merge_results",
]
