"""Help request domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field


class RequestStatus(StrEnum):
    """Help request lifecycle status."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RequestType(StrEnum):
    """Who the help is requested on behalf of."""

    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"


class HelpRequest(BaseModel):
    """Help request data transfer object."""

    id: str = Field(..., description="Unique help request ID")
    owner_id: str = Field(..., description="Profile ID of the actor who published the request")
    title: str = Field(..., description="Short summary of the need")
    description: str = Field(..., description="Detailed description of the need")
    category: str = Field(default="", description="Free-form classification (e.g. 'food')")
    request_type: RequestType = Field(default=RequestType.INDIVIDUAL, description="individual or organization")
    status: RequestStatus = Field(default=RequestStatus.OPEN, description="Current lifecycle status")
    created_at: str = Field(..., description="Creation timestamp (ISO format)")
