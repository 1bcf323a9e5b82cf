"""Profile and actor domain models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class ActorRole(StrEnum):
    """Role of an authenticated actor."""

    INDIVIDUAL = "individual"
    ADMIN = "admin"


class Actor(BaseModel):
    """The authenticated identity passed into every lifecycle operation."""

    id: str = Field(..., description="Profile ID of the actor")
    role: ActorRole = Field(default=ActorRole.INDIVIDUAL, description="Actor role")

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN


class Profile(BaseModel):
    """Profile data transfer object."""

    id: str = Field(..., description="Unique profile ID")
    full_name: str = Field(default="", description="Display name")
    location: str = Field(default="", description="Free-form location")
    role: ActorRole = Field(default=ActorRole.INDIVIDUAL, description="Actor role")

    def as_actor(self) -> Actor:
        """Reduce the profile to the identity the lifecycle engine needs."""
        return Actor(id=self.id, role=self.role)
