from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, inspect, text

from app.database import Database


def _initialise_legacy_schema(database_path: str) -> None:
    """Create a legacy movies table lacking the imdb_id column."""

    engine = create_engine(f"sqlite:///{database_path}")
    try:
        with engine.begin() as connection:
            connection.execute(
                text(
                    """
                    CREATE TABLE movies (
                        movie_id INTEGER PRIMARY KEY,
                        title VARCHAR(255),
                        released VARCHAR(64),
                        description TEXT
                    )
                    """
                )
            )
    finally:
        engine.dispose()


def test_create_all_adds_imdb_id_column(tmp_path) -> None:
    """Schema migrations should backfill the imdb_id column."""

    database_path = tmp_path / "legacy.db"
    _initialise_legacy_schema(str(database_path))

    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        columns = {column["name"] for column in inspector.get_columns("movies")}
        tables = set(inspector.get_table_names())
    finally:
        inspector_engine.dispose()

    assert "imdb_id" in columns
    assert {"user_info", "movie_preferences", "user_watched_movies"} <= tables
