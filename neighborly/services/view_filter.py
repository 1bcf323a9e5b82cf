"""Pure projections deriving what an actor sees from the full entity lists.

Nothing here touches the store; callers re-run these on every data change.
Input order is preserved.
"""

from collections.abc import Sequence
from typing import TypeVar

from neighborly.core.config import Constants
from neighborly.domain.help_request import HelpRequest
from neighborly.domain.profile import Actor, ActorRole
from neighborly.domain.task import Task, TaskWithRequest


ALL = "all"

TaskT = TypeVar("TaskT", bound=Task)


def _matches_search(request: HelpRequest, term: str) -> bool:
    return (
        term in request.title.lower()
        or term in (request.description or "").lower()
        or term in (request.category or "").lower()
    )


def visible_requests(
    requests: Sequence[HelpRequest],
    actor_role: ActorRole | str,
    *,
    search_term: str = "",
    status_filter: str = ALL,
) -> list[HelpRequest]:
    """Filter help requests by search term and status.

    Every authenticated role sees every request; ``actor_role`` does not hide
    anything today.

    Args:
        requests: All help requests, in display order
        actor_role: Role of the viewing actor
        search_term: Case-insensitive substring over title, description and category
        status_filter: A request status, or "all"

    Returns:
        The matching requests in their original order
    """
    term = search_term.strip().lower()
    visible = list(requests)

    if term:
        visible = [request for request in visible if _matches_search(request, term)]

    if status_filter and status_filter != ALL:
        visible = [request for request in visible if request.status == status_filter]

    return visible


def visible_tasks(
    tasks: Sequence[TaskT],
    actor: Actor,
    actor_role: ActorRole | str,
    *,
    status_filter: str = ALL,
) -> list[TaskT]:
    """Restrict tasks to the actor's own unless the actor is an admin, then filter by status."""
    visible = list(tasks)

    if actor_role != ActorRole.ADMIN:
        visible = [task for task in visible if task.assignee_id == actor.id]

    if status_filter and status_filter != ALL:
        visible = [task for task in visible if task.status == status_filter]

    return visible


def display_title(task: TaskWithRequest) -> str:
    """Title to show for a task; orphaned tasks show a placeholder."""
    return task.request_title or Constants.UNTITLED_TASK
