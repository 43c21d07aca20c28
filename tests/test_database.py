from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, inspect

from app.database import Database


def test_create_all_creates_cache_table(tmp_path) -> None:
    """Startup should provision the cache_entries table on a fresh database."""

    database_path = tmp_path / "cache.db"

    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        columns = {column["name"] for column in inspector.get_columns("cache_entries")}
    finally:
        inspector_engine.dispose()

    assert columns == {"key", "payload", "written_at"}


def test_create_all_is_idempotent(tmp_path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'twice.db'}")

    async def runner() -> None:
        await database.create_all()
        await database.create_all()
        await database.dispose()

    asyncio.run(runner())
