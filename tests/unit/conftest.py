"""Pytest configuration and fixtures for unit tests."""

import pytest

from neighborly.domain.profile import Actor, ActorRole
from neighborly.services import notification_service
from neighborly.services.notification_service import OutcomeEvent
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches neighborly.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("neighborly.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("neighborly.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("neighborly.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("neighborly.core.db_client.update_record_if", in_memory_db.update_record_if)
    monkeypatch.setattr("neighborly.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("neighborly.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("neighborly.core.db_client.get_first_record", in_memory_db.get_first_record)

    return in_memory_db


@pytest.fixture(autouse=True)
def _reset_subscribers():
    """Outcome subscribers are module state; never leak them between tests."""
    yield
    notification_service._subscribers.clear()


@pytest.fixture
def outcome_events():
    """Collects every outcome event emitted during the test."""
    events: list[OutcomeEvent] = []

    async def _collect(event: OutcomeEvent) -> None:
        events.append(event)

    notification_service.subscribe(_collect)
    return events


async def _profile(db: InMemoryDBClient, full_name: str, role: ActorRole) -> Actor:
    record = await db.create_record("profiles", {"full_name": full_name, "location": "", "role": role.value})
    return Actor(id=record["id"], role=role)


@pytest.fixture
async def owner(patched_db):
    """Individual who publishes help requests."""
    return await _profile(patched_db, "Olive Owner", ActorRole.INDIVIDUAL)


@pytest.fixture
async def volunteer(patched_db):
    """Individual who claims help requests."""
    return await _profile(patched_db, "Val Volunteer", ActorRole.INDIVIDUAL)


@pytest.fixture
async def other_volunteer(patched_db):
    return await _profile(patched_db, "Otto Other", ActorRole.INDIVIDUAL)


@pytest.fixture
async def admin(patched_db):
    return await _profile(patched_db, "Ada Admin", ActorRole.ADMIN)
