"""Pydantic models for creating records in database."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator

from neighborly.core.config import Constants
from neighborly.domain.help_request import RequestStatus, RequestType
from neighborly.domain.task import TaskStatus


def _utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class HelpRequestCreate(BaseModel):
    """Pydantic model for creating a help request record."""

    owner_id: str = Field(..., description="Profile ID of the creator")
    title: str = Field(..., description="Short summary of the need")
    description: str = Field(..., description="Detailed description of the need")
    category: str = Field(default="", description="Free-form classification")
    request_type: RequestType = Field(default=RequestType.INDIVIDUAL, description="individual or organization")
    status: RequestStatus = Field(default=RequestStatus.OPEN, description="Always open on creation")
    created_at: str = Field(default_factory=_utc_now, description="Creation timestamp")

    @field_validator("title", "description")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject empty or whitespace-only text."""
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("title")
    @classmethod
    def validate_title_length(cls, v: str) -> str:
        if len(v) > Constants.MAX_TITLE_LENGTH:
            raise ValueError(f"too long (max {Constants.MAX_TITLE_LENGTH} characters)")
        return v

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        v = v.strip()
        if len(v) > Constants.MAX_CATEGORY_LENGTH:
            raise ValueError(f"too long (max {Constants.MAX_CATEGORY_LENGTH} characters)")
        return v


class TaskCreate(BaseModel):
    """Pydantic model for creating a task record when a request is claimed."""

    help_request_id: str = Field(..., description="ID of the claimed help request")
    assignee_id: str = Field(..., description="Profile ID of the claiming volunteer")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Always pending on creation")
    created_at: str = Field(default_factory=_utc_now, description="Creation timestamp")
