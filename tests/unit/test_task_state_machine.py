"""Unit tests for task_state_machine module."""

import pytest

from neighborly.core.errors import InvalidTransitionError
from neighborly.domain.help_request import RequestStatus
from neighborly.domain.task import TaskStatus
from neighborly.services import task_state_machine


@pytest.mark.unit
class TestTaskTransitions:
    """Tests for the forward-only task transition table."""

    @pytest.mark.parametrize(
        ("current", "new"),
        [
            (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
            (TaskStatus.IN_PROGRESS, TaskStatus.DONE),
        ],
    )
    def test_single_forward_step_allowed(self, current, new):
        assert task_state_machine.is_allowed(current, new)
        task_state_machine.validate_task_transition(task_id="t1", current=current, new=new)

    @pytest.mark.parametrize(
        ("current", "new"),
        [
            (TaskStatus.PENDING, TaskStatus.DONE),
            (TaskStatus.PENDING, TaskStatus.PENDING),
            (TaskStatus.IN_PROGRESS, TaskStatus.PENDING),
            (TaskStatus.IN_PROGRESS, TaskStatus.IN_PROGRESS),
            (TaskStatus.DONE, TaskStatus.PENDING),
            (TaskStatus.DONE, TaskStatus.IN_PROGRESS),
            (TaskStatus.DONE, TaskStatus.DONE),
        ],
    )
    def test_other_moves_rejected(self, current, new):
        assert not task_state_machine.is_allowed(current, new)
        with pytest.raises(InvalidTransitionError, match="Cannot move task t1"):
            task_state_machine.validate_task_transition(task_id="t1", current=current, new=new)

    def test_done_is_terminal(self):
        assert task_state_machine.TASK_TRANSITIONS[TaskStatus.DONE] == set()
        assert TaskStatus.DONE in task_state_machine.TERMINAL_TASK_STATES


@pytest.mark.unit
class TestDeriveRequestStatus:
    """Tests for derive_request_status function."""

    def test_no_tasks_is_open(self):
        assert task_state_machine.derive_request_status([]) == RequestStatus.OPEN

    def test_pending_task_is_in_progress(self):
        assert task_state_machine.derive_request_status([TaskStatus.PENDING]) == RequestStatus.IN_PROGRESS

    def test_all_done_is_completed(self):
        statuses = [TaskStatus.DONE, TaskStatus.DONE]
        assert task_state_machine.derive_request_status(statuses) == RequestStatus.COMPLETED

    def test_any_unfinished_task_keeps_request_in_progress(self):
        statuses = [TaskStatus.DONE, TaskStatus.IN_PROGRESS]
        assert task_state_machine.derive_request_status(statuses) == RequestStatus.IN_PROGRESS
