"""Per-request state for the query orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
import time
from typing import Final

from fastmcp.utilities.logging import get_logger

_logger = get_logger(__name__)


class SearchPhase(Enum):
    """Phase of a single smart-search request."""

    IDLE = auto()
    ANALYZING = auto()
    VALIDATING = auto()
    SEARCHING = auto()
    MERGING = auto()
    FORMATTING = auto()
    DONE = auto()
    FAILED = auto()


TERMINAL_PHASES: Final[frozenset[SearchPhase]] = frozenset({SearchPhase.DONE, SearchPhase.FAILED})


@dataclass(slots=True)
class RequestState:
    """Mutable state owned by exactly one request."""

    phase: SearchPhase = SearchPhase.IDLE
    attempts: int = 0
    warnings: list[str] = field(default_factory=list)
    started_at: float = field(default_factory=time.perf_counter)

    def enter(self, phase: SearchPhase) -> None:
        if self.phase in TERMINAL_PHASES:
            msg = f"request already finished in phase {self.phase.name}"
            raise RuntimeError(msg)
        _logger.debug("smart_search: %s -> %s", self.phase.name, phase.name)
        self.phase = phase

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started_at) * 1000.0
