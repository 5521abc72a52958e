from __future__ import annotations

import pytest
import sqlalchemy as sa
from sqlalchemy import text


def mk_engine() -> sa.Engine:
    return sa.create_engine("sqlite+pysqlite:///:memory:")


def setup_pianos(engine: sa.Engine) -> None:
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE pianos("
                "id INTEGER PRIMARY KEY, piano_title TEXT, artist_name TEXT, created_at DATETIME)"
            )
        )
        conn.execute(
            text(
                "INSERT INTO pianos(id, piano_title, artist_name, created_at) VALUES "
                "(1, 'Sunrise Keys', 'Wolfgang Mozart', '2024-01-01 10:00:00'),"
                "(2, 'Chopin', 'Unknown Artist', '2024-02-01 10:00:00'),"
                "(3, 'Chopin Nocturne Blue', 'Frederic C', '2024-03-01 10:00:00'),"
                "(4, 'Harbour Lights', 'Ada Lovelace', '2024-04-01 10:00:00')"
            )
        )


@pytest.fixture
def engine() -> sa.Engine:
    return mk_engine()


@pytest.fixture
def piano_engine() -> sa.Engine:
    eng = mk_engine()
    setup_pianos(eng)
    return eng
