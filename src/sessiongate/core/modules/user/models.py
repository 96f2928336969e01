from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from sessiongate.core.db import MongoModel
from sessiongate.utils import now


class User(MongoModel):
    """User profile keyed by the identity provider's email claim."""

    email: str
    name: str | None = None
    image_url: str | None = None
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)


class UserCreate(BaseModel):
    """Profile fields stored when a user is seen for the first time."""

    email: str
    name: str | None = None
    image_url: str | None = None


class UserUpdate(BaseModel):
    """Mutable profile fields refreshed on every login."""

    name: str | None = None
    image_url: str | None = None


class UserView(BaseModel):
    """User account information (API representation)."""

    id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    name: str | None = Field(None, description="Display name")
    image_url: str | None = Field(None, description="Avatar URL")

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        """Create view model from domain model."""
        return cls(id=user.id, email=user.email, name=user.name, image_url=user.image_url)
