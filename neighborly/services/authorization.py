"""Authorization gate: who may manage, claim, or override which entity.

Every predicate is pure over the snapshot of actor and entity it is handed.
"""

from neighborly.core.errors import PermissionDeniedError
from neighborly.domain.help_request import HelpRequest, RequestStatus
from neighborly.domain.profile import Actor
from neighborly.domain.task import Task


def require_actor(actor: Actor | None) -> Actor:
    """Reject unauthenticated callers.

    Raises:
        PermissionDeniedError: If no actor is present
    """
    if actor is None:
        raise PermissionDeniedError("Authentication required")
    return actor


def can_manage_request(actor: Actor, request: HelpRequest) -> bool:
    """Edit and delete are reserved to the owner, regardless of role."""
    return actor.id == request.owner_id


def can_set_request_status(actor: Actor, request: HelpRequest) -> bool:
    """The owner or any admin may overwrite a request's status."""
    return actor.is_admin or actor.id == request.owner_id


def can_manage_task(actor: Actor, task: Task) -> bool:
    """The assignee or any admin may advance or delete a task."""
    return actor.is_admin or actor.id == task.assignee_id


def can_claim(actor: Actor, request: HelpRequest) -> bool:
    """Only open requests can be claimed, and never by their owner."""
    return request.status == RequestStatus.OPEN and actor.id != request.owner_id


def can_manage(actor: Actor | None, entity: HelpRequest | Task) -> bool:
    """Single entry point dispatching on entity type."""
    if actor is None:
        return False
    if isinstance(entity, HelpRequest):
        return can_manage_request(actor, entity)
    if isinstance(entity, Task):
        return can_manage_task(actor, entity)
    msg = f"Unsupported entity type: {type(entity).__name__}"
    raise TypeError(msg)
