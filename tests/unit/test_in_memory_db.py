"""Tests for the in-memory store double used by unit tests."""

import pytest

from neighborly.core.db_client import RecordNotFoundError, StoreError


@pytest.mark.unit
class TestInMemoryDBClient:
    async def test_create_and_get(self, in_memory_db):
        created = await in_memory_db.create_record("tasks", {"status": "pending"})

        assert created["id"] == "1000"
        assert await in_memory_db.get_record("tasks", created["id"]) == created

    async def test_get_missing(self, in_memory_db):
        with pytest.raises(RecordNotFoundError, match="Record not found"):
            await in_memory_db.get_record("tasks", "1")

    async def test_update_record_if_applies_when_expected_holds(self, in_memory_db):
        created = await in_memory_db.create_record("help_requests", {"status": "open"})

        updated = await in_memory_db.update_record_if(
            "help_requests", created["id"], {"status": "in_progress"}, {"status": "open"}
        )

        assert updated["status"] == "in_progress"

    async def test_update_record_if_returns_none_when_condition_fails(self, in_memory_db):
        created = await in_memory_db.create_record("help_requests", {"status": "in_progress"})

        result = await in_memory_db.update_record_if(
            "help_requests", created["id"], {"status": "in_progress"}, {"status": "open"}
        )

        assert result is None

    async def test_update_record_if_missing_row(self, in_memory_db):
        with pytest.raises(RecordNotFoundError):
            await in_memory_db.update_record_if("help_requests", "1", {"status": "open"}, {"status": "open"})

    async def test_filter_and_sort(self, in_memory_db):
        await in_memory_db.create_record("help_requests", {"title": "b", "status": "open"})
        await in_memory_db.create_record("help_requests", {"title": "a", "status": "open"})
        await in_memory_db.create_record("help_requests", {"title": "c", "status": "completed"})

        records = await in_memory_db.list_records("help_requests", filter_query='status = "open"', sort="-title")

        assert [r["title"] for r in records] == ["b", "a"]

    async def test_invalid_filter(self, in_memory_db):
        await in_memory_db.create_record("tasks", {"status": "pending"})

        with pytest.raises(StoreError, match="Invalid filter syntax"):
            await in_memory_db.list_records("tasks", filter_query="status pending")
