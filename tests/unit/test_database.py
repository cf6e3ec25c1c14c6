"""Unit tests for the database lifecycle object."""

from pathlib import Path

import pytest

from vidtube.database import Database


@pytest.mark.asyncio
async def test_ping_reachable(database: Database):
    assert await database.ping() is True


@pytest.mark.asyncio
async def test_ping_unreachable(tmp_path: Path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'vidtube.db'}")
    try:
        assert await db.ping() is False
    finally:
        await db.close()
