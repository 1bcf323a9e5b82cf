"""End-to-end lifecycle scenarios against a real SQLite store."""

import asyncio

import pytest

from neighborly.core.config import Constants
from neighborly.core.errors import ConflictError
from neighborly.domain.help_request import RequestStatus
from neighborly.domain.profile import ActorRole
from neighborly.domain.task import TaskStatus
from neighborly.services import lifecycle_service, profile_service


@pytest.fixture
async def people(sqlite_db):
    owner = await profile_service.create_profile(full_name="Olive Owner")
    first = await profile_service.create_profile(full_name="Val Volunteer")
    second = await profile_service.create_profile(full_name="Otto Other")
    admin = await profile_service.create_profile(full_name="Ada Admin", role=ActorRole.ADMIN)
    return owner.as_actor(), first.as_actor(), second.as_actor(), admin.as_actor()


async def test_request_lifecycle_to_completion(people):
    owner, volunteer, _, _ = people

    request = await lifecycle_service.create_request(actor=owner, title="Grocery run", description="Weekly shop")
    task = await lifecycle_service.claim_request(actor=volunteer, request_id=request.id)
    await lifecycle_service.advance_task(actor=volunteer, task_id=task.id, new_status=TaskStatus.IN_PROGRESS)
    await lifecycle_service.advance_task(actor=volunteer, task_id=task.id, new_status=TaskStatus.DONE)

    assert (await lifecycle_service.get_request(request_id=request.id)).status == RequestStatus.COMPLETED
    assert (await lifecycle_service.get_task(task_id=task.id)).status == TaskStatus.DONE


async def test_concurrent_claims_create_one_task(people):
    owner, volunteer, other, _ = people
    request = await lifecycle_service.create_request(actor=owner, title="Fix fence", description="Storm damage")

    results = await asyncio.gather(
        lifecycle_service.claim_request(actor=volunteer, request_id=request.id),
        lifecycle_service.claim_request(actor=other, request_id=request.id),
        return_exceptions=True,
    )

    assert sum(isinstance(r, ConflictError) for r in results) == 1
    assert len(await lifecycle_service.list_tasks()) == 1


async def test_deleted_task_drift_is_repaired(people):
    owner, volunteer, _, admin = people
    request = await lifecycle_service.create_request(actor=owner, title="Dog walking", description="Twice daily")
    task = await lifecycle_service.claim_request(actor=volunteer, request_id=request.id)
    await lifecycle_service.delete_task(actor=admin, task_id=task.id)

    drifted = await lifecycle_service.find_status_drift()
    repaired = await lifecycle_service.recompute_request_status(request_id=request.id, actor=admin)

    assert [r.id for r, _ in drifted] == [request.id]
    assert repaired.status == RequestStatus.OPEN


async def test_reopened_request_with_unfinished_task_cannot_be_claimed_again(people):
    owner, volunteer, other, _ = people
    request = await lifecycle_service.create_request(actor=owner, title="Lift to clinic", description="Tuesday 9am")
    await lifecycle_service.claim_request(actor=volunteer, request_id=request.id)
    await lifecycle_service.set_request_status(actor=owner, request_id=request.id, new_status=RequestStatus.OPEN)

    with pytest.raises(ConflictError, match="unfinished task"):
        await lifecycle_service.claim_request(actor=other, request_id=request.id)

    assert (await lifecycle_service.get_request(request_id=request.id)).status == RequestStatus.OPEN
    assert [t.assignee_id for t in await lifecycle_service.list_tasks()] == [volunteer.id]


async def test_listings_span_several_pages(people, monkeypatch):
    owner, _, _, _ = people
    monkeypatch.setattr(Constants, "DEFAULT_PER_PAGE_LIMIT", 2)
    for n in range(5):
        await lifecycle_service.create_request(actor=owner, title=f"Errand {n}", description="Any day")

    assert len(await lifecycle_service.list_requests(owner_id=owner.id)) == 5
