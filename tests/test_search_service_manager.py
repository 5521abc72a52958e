from __future__ import annotations

import asyncio
from collections.abc import Iterator
from pathlib import Path

import pytest
import sqlalchemy as sa
from sqlalchemy import text

from smart_search_mcp.services.search_service_manager import (
    SearchServiceManager,
    ServiceInitPhase,
)


@pytest.fixture
def manager(monkeypatch: pytest.MonkeyPatch) -> Iterator[SearchServiceManager]:
    for name in ("SMART_SEARCH_LLM_MODEL", "SMART_SEARCH_DB_SCHEMA"):
        monkeypatch.delenv(name, raising=False)
    SearchServiceManager.reset_instance()
    yield SearchServiceManager.get_instance()
    SearchServiceManager.reset_instance()


def _init(mgr: SearchServiceManager) -> bool:
    async def _run() -> bool:
        mgr.start_background_initialization()
        return await mgr.ensure_ready(wait_timeout=30)

    return asyncio.run(_run())


def test_get_instance_is_singleton(manager: SearchServiceManager) -> None:
    assert SearchServiceManager.get_instance() is manager


def test_orchestrator_unavailable_before_initialization(manager: SearchServiceManager) -> None:
    assert manager.status().phase is ServiceInitPhase.IDLE
    with pytest.raises(RuntimeError, match="in progress"):
        asyncio.run(manager.get_orchestrator())


def test_initialization_builds_orchestrator(
    manager: SearchServiceManager, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    url = f"sqlite+pysqlite:///{tmp_path / 'search.db'}"
    seed = sa.create_engine(url)
    with seed.begin() as conn:
        conn.execute(text("CREATE TABLE news(id INTEGER PRIMARY KEY, news_title TEXT)"))
        conn.execute(text("INSERT INTO news(news_title) VALUES ('Spring concert')"))
    seed.dispose()
    monkeypatch.setenv("SMART_SEARCH_DATABASE_URL", url)

    assert _init(manager) is True
    assert manager.is_initialized
    assert manager.status().table_count == 1

    orchestrator = asyncio.run(manager.get_orchestrator())
    assert orchestrator.reasoner is None
    result = orchestrator.smart_search("latest news about the concert")
    assert result.status == "ok"
    assert result.results[0].fields["news_title"] == "Spring concert"

    asyncio.run(manager.shutdown())
    assert manager.status().phase is ServiceInitPhase.STOPPED
    with pytest.raises(RuntimeError, match="stopped"):
        asyncio.run(manager.get_orchestrator())


def test_initialization_failure_is_reported(
    manager: SearchServiceManager, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("SMART_SEARCH_DATABASE_URL", raising=False)

    assert _init(manager) is False
    state = manager.status()
    assert state.phase is ServiceInitPhase.FAILED
    assert state.error_message is not None
    with pytest.raises(RuntimeError, match="initialization failure"):
        asyncio.run(manager.get_orchestrator())
