"""Pure state transition rules for task and help request lifecycles."""

from neighborly.core.errors import InvalidTransitionError
from neighborly.domain.help_request import RequestStatus
from neighborly.domain.task import TaskStatus


# Forward-only; done is terminal
TASK_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS},
    TaskStatus.IN_PROGRESS: {TaskStatus.DONE},
    TaskStatus.DONE: set(),
}

TERMINAL_TASK_STATES: frozenset[TaskStatus] = frozenset({TaskStatus.DONE})


def is_allowed(current: TaskStatus, new: TaskStatus) -> bool:
    """Whether a task may move from ``current`` to ``new``."""
    return new in TASK_TRANSITIONS[current]


def validate_task_transition(*, task_id: str, current: TaskStatus, new: TaskStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> new`` is a single forward step."""
    if not is_allowed(current, new):
        msg = f"Cannot move task {task_id} from {current} to {new}"
        raise InvalidTransitionError(msg)


def derive_request_status(task_statuses: list[TaskStatus]) -> RequestStatus:
    """Derive the status a help request should have from the tasks that reference it.

    Any non-terminal task keeps the request in progress; otherwise a finished
    task completes it; with no tasks at all it is open again.
    """
    if any(status not in TERMINAL_TASK_STATES for status in task_statuses):
        return RequestStatus.IN_PROGRESS
    if task_statuses:
        return RequestStatus.COMPLETED
    return RequestStatus.OPEN
