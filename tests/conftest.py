"""Pytest configuration and shared fixtures."""

import pytest

from neighborly.core import db_client
from neighborly.core.config import settings


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch):
    """Point the entity store at a fresh SQLite file and create the schema."""
    db_path = str(tmp_path / "neighborly_test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()
