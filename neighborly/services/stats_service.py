"""Summary statistics for dashboards and profile pages."""

import logging
from collections import Counter
from collections.abc import Sequence

from pydantic import BaseModel

from neighborly.core.logging import span
from neighborly.domain.help_request import HelpRequest, RequestStatus
from neighborly.domain.task import Task, TaskStatus
from neighborly.services import lifecycle_service


logger = logging.getLogger(__name__)


class ActorStatistics(BaseModel):
    """Counts of an actor's own requests and claimed tasks."""

    actor_id: str
    total_requests: int
    open_requests: int
    completed_requests: int
    total_tasks: int
    pending_tasks: int
    in_progress_tasks: int
    completed_tasks: int


def request_status_counts(requests: Sequence[HelpRequest]) -> dict[RequestStatus, int]:
    """Count requests per status; every status is present, even at zero."""
    counts = Counter(request.status for request in requests)
    return {status: counts.get(status, 0) for status in RequestStatus}


def task_status_counts(tasks: Sequence[Task]) -> dict[TaskStatus, int]:
    """Count tasks per status; every status is present, even at zero."""
    counts = Counter(task.status for task in tasks)
    return {status: counts.get(status, 0) for status in TaskStatus}


async def get_actor_stats(*, actor_id: str, timeout: float | None = None) -> ActorStatistics:
    """Summarize the requests an actor owns and the tasks they have claimed.

    Args:
        actor_id: Profile ID of the actor
        timeout: Bound in seconds for each store call

    Returns:
        ActorStatistics for the actor
    """
    with span("stats_service.get_actor_stats"):
        requests = await lifecycle_service.list_requests(owner_id=actor_id, timeout=timeout)
        tasks = await lifecycle_service.list_tasks(assignee_id=actor_id, timeout=timeout)

        request_counts = request_status_counts(requests)
        task_counts = task_status_counts(tasks)

        stats = ActorStatistics(
            actor_id=actor_id,
            total_requests=len(requests),
            open_requests=request_counts[RequestStatus.OPEN],
            completed_requests=request_counts[RequestStatus.COMPLETED],
            total_tasks=len(tasks),
            pending_tasks=task_counts[TaskStatus.PENDING],
            in_progress_tasks=task_counts[TaskStatus.IN_PROGRESS],
            completed_tasks=task_counts[TaskStatus.DONE],
        )
        logger.debug("Actor stats for %s: %s", actor_id, stats.model_dump())
        return stats
