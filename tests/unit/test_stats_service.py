"""Unit tests for stats_service module."""

import pytest

from neighborly.domain.help_request import HelpRequest, RequestStatus
from neighborly.domain.task import Task, TaskStatus
from neighborly.services import lifecycle_service, stats_service


@pytest.mark.unit
class TestStatusCounts:
    """Tests for the pure counting helpers."""

    def test_request_counts_include_every_status(self):
        requests = [
            HelpRequest(id=str(i), owner_id="1", title="t", description="d", status=status, created_at="x")
            for i, status in enumerate([RequestStatus.OPEN, RequestStatus.OPEN, RequestStatus.COMPLETED])
        ]

        counts = stats_service.request_status_counts(requests)

        assert counts == {RequestStatus.OPEN: 2, RequestStatus.IN_PROGRESS: 0, RequestStatus.COMPLETED: 1}

    def test_task_counts_empty(self):
        assert stats_service.task_status_counts([]) == dict.fromkeys(TaskStatus, 0)

    def test_task_counts(self):
        tasks = [
            Task(id="1", help_request_id="1", assignee_id="2", status=TaskStatus.DONE, created_at="x"),
            Task(id="2", help_request_id="2", assignee_id="2", status=TaskStatus.PENDING, created_at="x"),
        ]

        counts = stats_service.task_status_counts(tasks)

        assert counts[TaskStatus.DONE] == 1
        assert counts[TaskStatus.PENDING] == 1
        assert counts[TaskStatus.IN_PROGRESS] == 0


@pytest.mark.unit
class TestGetActorStats:
    async def test_counts_own_requests_and_claimed_tasks(self, patched_db, owner, volunteer):
        first = await lifecycle_service.create_request(actor=owner, title="First", description="d")
        await lifecycle_service.create_request(actor=owner, title="Second", description="d")
        task = await lifecycle_service.claim_request(actor=volunteer, request_id=first.id)
        await lifecycle_service.advance_task(actor=volunteer, task_id=task.id, new_status="in_progress")
        await lifecycle_service.advance_task(actor=volunteer, task_id=task.id, new_status="done")

        owner_stats = await stats_service.get_actor_stats(actor_id=owner.id)
        volunteer_stats = await stats_service.get_actor_stats(actor_id=volunteer.id)

        assert owner_stats.total_requests == 2
        assert owner_stats.open_requests == 1
        assert owner_stats.completed_requests == 1
        assert owner_stats.total_tasks == 0

        assert volunteer_stats.total_requests == 0
        assert volunteer_stats.total_tasks == 1
        assert volunteer_stats.completed_tasks == 1
        assert volunteer_stats.pending_tasks == 0
