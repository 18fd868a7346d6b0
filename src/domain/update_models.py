"""Update models for incoming update requests."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.core.config import constants
from src.domain.create_models import (
    validate_coordinates,
    validate_description,
    validate_email,
    validate_name,
    validate_password,
    validate_title,
)
from src.domain.task import GeoPoint, TaskPriority, TaskStatus, parse_datetime


class UserDetailsUpdate(BaseModel):
    """Update payload for the current user's name and email."""

    name: str | None = None
    email: str | None = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str | None) -> str | None:
        return validate_name(v) if v is not None else v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        return validate_email(v) if v is not None else v


class PasswordUpdate(BaseModel):
    """Update payload for the current user's password."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, v: str) -> str:
        return validate_password(v)


class TaskUpdate(BaseModel):
    """Full task update payload; omitted fields are left unchanged.

    Sending ``latitude`` and ``longitude`` both as empty strings clears the location.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = Field(default=None, alias="dueDate")
    assignee_id: str | None = Field(default=None, alias="user")
    latitude: float | Literal[""] | None = None
    longitude: float | Literal[""] | None = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        return validate_title(v) if v is not None else v

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str | None) -> str | None:
        return validate_description(v) if v is not None else v

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        return parse_datetime(v)

    @model_validator(mode="after")
    def check_location(self) -> "TaskUpdate":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Please provide both latitude and longitude")
        if (self.latitude == "") != (self.longitude == ""):
            raise ValueError("Please provide both latitude and longitude")
        self.location_change()
        return self

    def location_change(self) -> tuple[bool, GeoPoint | None]:
        """Return (changed, new_location); a None location means cleared."""
        if self.latitude is None or self.longitude is None:
            return False, None
        if self.latitude == "" and self.longitude == "":
            return True, None
        return True, validate_coordinates(float(self.latitude), float(self.longitude))


class TaskStatusUpdate(BaseModel):
    """Status-only task update."""

    status: TaskStatus

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, v: Any) -> Any:
        if v not in {s.value for s in TaskStatus}:
            raise ValueError("Please provide a valid status")
        return v


class DocumentStatusUpdate(BaseModel):
    """Approve/reject payload. The decision value is checked by the workflow engine."""

    status: str | None = None
    notes: str | None = None

    @field_validator("notes")
    @classmethod
    def check_notes(cls, v: str | None) -> str | None:
        if v is not None and len(v) > constants.MAX_AUDIT_NOTES_LENGTH:
            raise ValueError(f"Notes cannot be more than {constants.MAX_AUDIT_NOTES_LENGTH} characters")
        return v
