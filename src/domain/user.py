"""User domain models and enums."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class UserRole(StrEnum):
    """Coarse permission class of a user."""

    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    """User data transfer object. Never carries the password hash."""

    id: str = Field(..., description="Unique user ID from database")
    name: str = Field(..., description="Display name of the user")
    email: str = Field(..., description="Unique, lower-cased email address")
    role: UserRole = Field(default=UserRole.USER, description="User role")
    created: datetime | None = Field(default=None, description="Creation timestamp")
    updated: datetime | None = Field(default=None, description="Last update timestamp")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
