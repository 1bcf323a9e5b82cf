"""Task domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field

from neighborly.core.config import Constants


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class Task(BaseModel):
    """Task data transfer object (a volunteer's claim on a help request)."""

    id: str = Field(..., description="Unique task ID")
    help_request_id: str = Field(..., description="ID of the owning help request")
    assignee_id: str = Field(..., description="Profile ID of the volunteer who claimed the request")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current lifecycle status")
    created_at: str = Field(..., description="Creation timestamp (ISO format)")


class TaskWithRequest(Task):
    """Task joined with the fields of its help request.

    The request fields are None when the task is orphaned.
    """

    request_title: str | None = None
    request_description: str | None = None
    request_category: str | None = None
    request_owner_id: str | None = None

    @property
    def is_orphaned(self) -> bool:
        """Whether the owning help request no longer exists."""
        return self.request_title is None

    @property
    def display_title(self) -> str:
        return self.request_title or Constants.UNTITLED_TASK
