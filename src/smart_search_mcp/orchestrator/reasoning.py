"""Reasoning collaborator: intent classification and result summaries.

The orchestrator treats the collaborator as best-effort. Anything it returns
is coerced through ``coerce_intent``; malformed output or an exception makes
the orchestrator fall back to local keyword heuristics.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from fastmcp.utilities.logging import get_logger
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator
from pydantic_ai import Agent
from pydantic_ai.models import Model

from smart_search_mcp.query.models import Record
from smart_search_mcp.services.config_service import LLMConfig

from .formatting import describe_records

_logger = get_logger(__name__)


class IntentAnalysis(BaseModel):
    """Structured intent extracted from a natural-language query."""

    intent_type: str = Field(
        default="general_search",
        validation_alias=AliasChoices("intent_type", "intentType", "type"),
        description="Search type, e.g. knowledge_search, news_search, general_search",
    )
    search_terms: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("search_terms", "searchTerms"),
        description="Two to five meaningful search terms",
    )
    confidence: float = Field(default=0.5, description="Confidence between 0.0 and 1.0")
    reasoning: str = Field(
        default="AI analysis performed", description="Brief explanation of the chosen type"
    )

    @field_validator("confidence", mode="after")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return min(1.0, max(0.0, value))


class ReasoningCollaborator(Protocol):
    """External reasoning service consumed by the orchestrator."""

    def classify_intent(self, query: str, schema_summary: str) -> object:
        """Return an IntentAnalysis, a mapping, or JSON text describing one."""
        ...

    def summarize(self, records: Sequence[Record], query: str, intent_type: str) -> str: ...


def coerce_intent(raw: object) -> IntentAnalysis | None:
    """Coerce collaborator output into an IntentAnalysis, or None if malformed."""
    if isinstance(raw, IntentAnalysis):
        return raw
    try:
        if isinstance(raw, str | bytes):
            return IntentAnalysis.model_validate_json(raw)
        if isinstance(raw, Mapping):
            return IntentAnalysis.model_validate(dict(raw))
    except ValidationError as exc:
        _logger.debug("Rejected collaborator intent output: %s", exc)
        return None
    return None


_INTENT_SYSTEM_PROMPT = (
    "You analyze a user's request for a database search.\n"
    "Rules:\n"
    "- Choose the most specific intent_type: knowledge_search, chat_search, user_search, "
    "document_search, news_search, piano_search or general_search.\n"
    "- Extract 2-5 meaningful search_terms.\n"
    "- confidence is between 0.0 and 1.0 and reflects query clarity.\n"
    "- Prefer semantic meaning over exact keywords.\n"
)

_SUMMARY_SYSTEM_PROMPT = (
    "You write a short, natural answer grounded only in the database rows provided.\n"
    "- Address the question directly and use specific details from the rows.\n"
    "- Mention when rows come from several sources.\n"
    "- Keep the answer under 300 words.\n"
)


class LlmReasoner:
    """Reasoning collaborator backed by two pydantic-ai agents.

    Agents are created on first use so that a missing provider or API key
    only disables the collaborator instead of failing startup.
    """

    def __init__(self, llm: LLMConfig, *, model: Model | str | None = None) -> None:
        self.llm = llm
        self._model_override = model
        self._intent_agent: Agent[None, IntentAnalysis] | None = None
        self._summary_agent: Agent[None, str] | None = None

    def _model(self) -> Model | str:
        if self._model_override is not None:
            return self._model_override
        model = self.llm.model
        return f"{self.llm.provider}:{model}" if ":" not in model else model

    def _settings(self, *, temperature: float, max_tokens: int) -> Any:
        return {
            "timeout": self.llm.timeout_sec,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    def _intent(self) -> Agent[None, IntentAnalysis]:
        if self._intent_agent is None:
            self._intent_agent = Agent(
                model=self._model(),
                system_prompt=_INTENT_SYSTEM_PROMPT,
                output_type=IntentAnalysis,
            )
        return self._intent_agent

    def _summary(self) -> Agent[None, str]:
        if self._summary_agent is None:
            self._summary_agent = Agent(
                model=self._model(),
                system_prompt=_SUMMARY_SYSTEM_PROMPT,
                output_type=str,
            )
        return self._summary_agent

    def classify_intent(self, query: str, schema_summary: str) -> IntentAnalysis:
        prompt = f'User query: "{query}"\n\nAvailable database schema:\n{schema_summary}\n'
        result = self._intent().run_sync(
            prompt, model_settings=self._settings(temperature=0.1, max_tokens=300)
        )
        return result.output

    def summarize(self, records: Sequence[Record], query: str, intent_type: str) -> str:
        prompt = (
            f'User asked: "{query}"\n'
            f"Query type: {intent_type}\n\n"
            f"Database results ({len(records)} found):\n"
            f"{describe_records(records)}\n"
        )
        result = self._summary().run_sync(
            prompt, model_settings=self._settings(temperature=0.4, max_tokens=400)
        )
        return result.output
