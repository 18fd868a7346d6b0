"""Pydantic models for incoming create requests."""

import re
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.core.config import constants
from src.domain.task import GeoPoint, TaskPriority, TaskStatus, parse_datetime
from src.domain.user import UserRole


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_LATITUDE, MAX_LATITUDE = -90.0, 90.0
MIN_LONGITUDE, MAX_LONGITUDE = -180.0, 180.0


def validate_name(v: str) -> str:
    """Validate a display name is non-empty and not too long."""
    v = v.strip()
    if not v:
        raise ValueError("Please add a name")
    if len(v) > constants.MAX_USER_NAME_LENGTH:
        raise ValueError(f"Name cannot be more than {constants.MAX_USER_NAME_LENGTH} characters")
    return v


def validate_email(v: str) -> str:
    """Validate and normalize an email address."""
    v = v.strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Please add a valid email")
    return v


def validate_password(v: str) -> str:
    if len(v) < constants.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {constants.MIN_PASSWORD_LENGTH} characters")
    return v


def validate_title(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Please add a title")
    if len(v) > constants.MAX_TASK_TITLE_LENGTH:
        raise ValueError(f"Title cannot be more than {constants.MAX_TASK_TITLE_LENGTH} characters")
    return v


def validate_description(v: str) -> str:
    if not v.strip():
        raise ValueError("Please add a description")
    if len(v) > constants.MAX_TASK_DESCRIPTION_LENGTH:
        raise ValueError(f"Description cannot be more than {constants.MAX_TASK_DESCRIPTION_LENGTH} characters")
    return v


def validate_coordinates(latitude: float, longitude: float) -> GeoPoint:
    """Build a GeoPoint after range-checking latitude and longitude."""
    if not MIN_LATITUDE <= latitude <= MAX_LATITUDE:
        raise ValueError("Latitude must be between -90 and 90")
    if not MIN_LONGITUDE <= longitude <= MAX_LONGITUDE:
        raise ValueError("Longitude must be between -180 and 180")
    return GeoPoint.from_lat_lng(latitude=latitude, longitude=longitude)


class RegisterRequest(BaseModel):
    """Registration payload."""

    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address (unique)")
    password: str = Field(..., description="Plain password, hashed before storage")
    role: UserRole = Field(default=UserRole.USER, description="Requested role")

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return validate_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password(v)


class LoginRequest(BaseModel):
    """Login payload; absent and empty credentials are both rejected."""

    email: str = Field(default="", description="Email address")
    password: str = Field(default="", description="Plain password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @model_validator(mode="after")
    def check_credentials_present(self) -> "LoginRequest":
        if not self.email or not self.password:
            raise ValueError("Please provide an email and password")
        return self


class LocationInput(BaseModel):
    """Location given as a latitude/longitude pair."""

    lat: float
    lng: float


class TaskCreate(BaseModel):
    """Task creation payload.

    Location can be given either as top-level ``latitude``/``longitude`` or as
    ``location: {lat, lng}``; both end up as a GeoJSON point.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., description="Task title")
    description: str = Field(..., description="Task description")
    due_date: datetime = Field(..., alias="dueDate", description="When the task is due")
    assignee_id: str | None = Field(default=None, alias="user", description="Assignee user ID")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Initial status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    latitude: float | None = Field(default=None, description="Latitude of the task location")
    longitude: float | None = Field(default=None, description="Longitude of the task location")
    location: LocationInput | None = Field(default=None, description="Latitude/longitude pair")

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        return validate_title(v)

    @field_validator("description")
    @classmethod
    def check_description(cls, v: str) -> str:
        return validate_description(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        return parse_datetime(v)

    @model_validator(mode="after")
    def check_location(self) -> "TaskCreate":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Please provide both latitude and longitude")
        self.geo_point()
        return self

    def geo_point(self) -> GeoPoint | None:
        """The requested location, or None if no location was given."""
        if self.latitude is not None and self.longitude is not None:
            return validate_coordinates(self.latitude, self.longitude)
        if self.location is not None:
            return validate_coordinates(self.location.lat, self.location.lng)
        return None


class DocumentCreate(BaseModel):
    """Document upload payload.

    ``user`` is accepted but ignored: the uploader is always the task owner.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Document name")
    file_url: str = Field(..., alias="fileUrl", description="External URL of the file")
    task_id: str = Field(..., alias="task", description="Parent task ID")
    user_id: str | None = Field(default=None, alias="user", description="Ignored uploader ID")
    file_size: int = Field(default=0, ge=0, alias="fileSize", description="File size in bytes")

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please add document name")
        if len(v) > constants.MAX_DOCUMENT_NAME_LENGTH:
            raise ValueError(f"Document name cannot be more than {constants.MAX_DOCUMENT_NAME_LENGTH} characters")
        return v

    @field_validator("file_url")
    @classmethod
    def check_file_url(cls, v: str) -> str:
        v = v.strip()
        parsed = urlparse(v)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("Please provide a valid URL")
        return v

    @field_validator("task_id", mode="before")
    @classmethod
    def coerce_task_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v
