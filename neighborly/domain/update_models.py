"""Update models for database operations."""

from pydantic import BaseModel, ConfigDict, field_validator

from neighborly.core.config import Constants
from neighborly.domain.help_request import RequestStatus, RequestType


class HelpRequestUpdate(BaseModel):
    """Partial update payload for a help request. Only fields that are set are written."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    category: str | None = None
    request_type: RequestType | None = None
    status: RequestStatus | None = None

    @field_validator("title", "description")
    @classmethod
    def validate_not_blank(cls, v: str | None) -> str | None:
        """Reject empty or whitespace-only text when the field is supplied."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("title")
    @classmethod
    def validate_title_length(cls, v: str | None) -> str | None:
        if v is not None and len(v) > Constants.MAX_TITLE_LENGTH:
            raise ValueError(f"too long (max {Constants.MAX_TITLE_LENGTH} characters)")
        return v

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) > Constants.MAX_CATEGORY_LENGTH:
            raise ValueError(f"too long (max {Constants.MAX_CATEGORY_LENGTH} characters)")
        return v


class RequestStatusUpdate(BaseModel):
    """Update payload for a direct help request status override."""

    status: RequestStatus
