"""Domain models and DTOs."""

from neighborly.domain.create_models import HelpRequestCreate, TaskCreate
from neighborly.domain.help_request import HelpRequest, RequestStatus, RequestType
from neighborly.domain.profile import Actor, ActorRole, Profile
from neighborly.domain.task import Task, TaskStatus, TaskWithRequest
from neighborly.domain.update_models import HelpRequestUpdate, RequestStatusUpdate


__all__ = [
    "Actor",
    "ActorRole",
    "HelpRequest",
    "HelpRequestCreate",
    "HelpRequestUpdate",
    "Profile",
    "RequestStatus",
    "RequestStatusUpdate",
    "RequestType",
    "Task",
    "TaskCreate",
    "TaskStatus",
    "TaskWithRequest",
]
