"""Search service manager for smart-search-mcp.

Provides a singleton `QueryOrchestrator` built in a background thread during
the FastMCP lifespan. Ensures exactly-once startup per process and fast-fails
tool calls while initialization is still running.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from enum import Enum, auto
import hashlib
import threading
import time
from typing import ClassVar, Final

from fastmcp.utilities.logging import get_logger
import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from smart_search_mcp.introspection.introspector import SchemaIntrospector
from smart_search_mcp.orchestrator.orchestrator import QueryOrchestrator
from smart_search_mcp.orchestrator.reasoning import LlmReasoner
from smart_search_mcp.query.builder import AdaptiveQueryBuilder
from smart_search_mcp.services.config_service import ConfigService


class ServiceInitPhase(Enum):
    """Lifecycle of the search service within one server process."""

    IDLE = auto()
    STARTING = auto()
    RUNNING = auto()
    READY = auto()
    FAILED = auto()
    STOPPED = auto()


@dataclass(frozen=True)
class ServiceInitState:
    """Snapshot of the lifecycle, reported by the health route.

    ``table_count`` is the number of tables found by the warm-up discovery.
    """

    phase: ServiceInitPhase
    started_at: float | None = None
    completed_at: float | None = None
    error_message: str | None = None
    table_count: int = 0


INIT_NOT_READY_PHASES: Final[frozenset[ServiceInitPhase]] = frozenset(
    {ServiceInitPhase.IDLE, ServiceInitPhase.STARTING, ServiceInitPhase.RUNNING}
)


def build_orchestrator(engine: sa.Engine) -> QueryOrchestrator:
    """Wire introspector, builder and reasoning collaborator from configuration."""
    introspector = SchemaIntrospector(engine, ConfigService.get_introspector_config())
    builder = AdaptiveQueryBuilder(
        engine,
        introspector,
        statement_timeout_sec=ConfigService.statement_timeout_sec(),
        max_cell_chars=ConfigService.result_max_cell_chars(),
    )
    llm = ConfigService.get_llm_config()
    reasoner = LlmReasoner(llm) if llm is not None else None
    return QueryOrchestrator(
        introspector,
        builder,
        reasoner=reasoner,
        retry_attempts=ConfigService.retry_attempts(),
    )


class SearchServiceManager:
    """Singleton manager for the QueryOrchestrator.

    The orchestrator is built once during FastMCP lifespan startup and
    shared by all tool calls for the rest of the session.
    """

    _instance: ClassVar[SearchServiceManager | None] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self) -> None:
        """Initialize the search service manager."""
        self._orchestrator: QueryOrchestrator | None = None
        self._engine: sa.Engine | None = None
        self._logger = get_logger(__name__)

        self._thread_lock = threading.Lock()
        self._init_thread: threading.Thread | None = None
        self._thread_ready = threading.Event()
        self._state = ServiceInitState(phase=ServiceInitPhase.IDLE)

    @classmethod
    def get_instance(cls) -> SearchServiceManager:
        """Get the singleton instance of SearchServiceManager."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (primarily for testing)."""
        with cls._lock:
            cls._instance = None

    def start_background_initialization(self) -> None:
        """Start background initialization exactly once without blocking."""
        with self._thread_lock:
            if self._state.phase in {
                ServiceInitPhase.STARTING,
                ServiceInitPhase.RUNNING,
                ServiceInitPhase.READY,
            }:
                self._logger.debug("Initialization already %s; skipping start", self._state.phase)
                return
            if self._state.phase in {ServiceInitPhase.FAILED, ServiceInitPhase.STOPPED}:
                self._logger.warning(
                    "Initialization in phase %s; not restarting", self._state.phase
                )
                return

            self._state = replace(
                self._state, phase=ServiceInitPhase.STARTING, started_at=time.time()
            )
            self._thread_ready.clear()

            def _runner() -> None:
                self._state = replace(self._state, phase=ServiceInitPhase.RUNNING)
                try:
                    table_count = self._initialize_sync()
                except (ValueError, RuntimeError, OSError, SQLAlchemyError) as exc:
                    self._state = replace(
                        self._state,
                        phase=ServiceInitPhase.FAILED,
                        error_message=str(exc),
                        completed_at=time.time(),
                    )
                    self._logger.exception("Search service initialization failed")
                else:
                    self._state = replace(
                        self._state,
                        phase=ServiceInitPhase.READY,
                        completed_at=time.time(),
                        table_count=table_count,
                    )
                finally:
                    self._thread_ready.set()

            self._init_thread = threading.Thread(target=_runner, name="search-init", daemon=True)
            self._init_thread.start()

    async def ensure_ready(self, wait_timeout: float | None = None) -> bool:
        """Wait for initialization completion.

        Returns True when READY. Returns False on timeout or FAILED.
        """
        phase = self._state.phase
        if phase is ServiceInitPhase.READY:
            return True
        if phase is ServiceInitPhase.FAILED:
            return False
        await asyncio.to_thread(self._thread_ready.wait, wait_timeout)
        return self._state.phase is ServiceInitPhase.READY

    async def get_orchestrator(self) -> QueryOrchestrator:
        """Get the initialized QueryOrchestrator.

        Raises:
            RuntimeError: If the service is not initialized or initialization failed
        """
        phase = self._state.phase
        if phase in INIT_NOT_READY_PHASES:
            self._logger.info("Search service requested while initializing (phase=%s)", phase)
            msg = "Search service initialization in progress"
            raise RuntimeError(msg)
        if phase is ServiceInitPhase.FAILED:
            self._logger.error(
                "Search service initialization previously failed: %s", self._state.error_message
            )
            msg = "Search service is not available due to initialization failure"
            raise RuntimeError(msg)
        if phase is ServiceInitPhase.STOPPED:
            msg = "Search service has been stopped"
            raise RuntimeError(msg)
        if self._orchestrator is None:
            msg = "Search service orchestrator is unexpectedly None"
            raise RuntimeError(msg)
        return self._orchestrator

    async def shutdown(self) -> None:
        """Dispose of the database engine and mark the service stopped."""
        with self._thread_lock:
            try:
                if self._engine is not None:
                    self._logger.info("Shutting down search service…")
                    self._engine.dispose()
                    self._logger.debug("Database engine disposed")
            except (OSError, RuntimeError, SQLAlchemyError) as exc:
                self._logger.warning("Error during search service shutdown: %s", exc)
            finally:
                self._engine = None
                self._orchestrator = None
                self._state = replace(self._state, phase=ServiceInitPhase.STOPPED)

    @property
    def is_initialized(self) -> bool:
        return self._state.phase is ServiceInitPhase.READY

    def status(self) -> ServiceInitState:
        """Return a snapshot of the initialization state."""
        return self._state

    # ---- internal ------------------------------------------------------------
    def _initialize_sync(self) -> int:
        """Build engine and orchestrator and warm the schema cache. Runs in a thread."""
        self._logger.info("Starting search service initialization…")

        database_url = ConfigService.get_database_url()
        fp = hashlib.sha256(database_url.encode("utf-8")).hexdigest()[:10]
        self._logger.debug("Using database fingerprint: %s", fp)

        engine = ConfigService.create_database_engine(database_url)
        self._logger.debug("Testing database connectivity…")
        with engine.connect() as conn:
            conn.execute(sa.text("SELECT 1"))

        orchestrator = build_orchestrator(engine)
        snapshot = orchestrator.introspector.discover(force_refresh=True)
        if orchestrator.introspector.last_refresh_error is not None:
            self._logger.warning(
                "Initial schema discovery failed: %s", orchestrator.introspector.last_refresh_error
            )

        self._engine = engine
        self._orchestrator = orchestrator
        self._logger.info(
            "Search service ready (%d tables, reasoning collaborator: %s)",
            len(snapshot.tables),
            "llm" if orchestrator.reasoner is not None else "heuristics only",
        )
        return len(snapshot.tables)
