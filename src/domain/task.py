"""Task domain models and enums."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from dateutil.parser import isoparse
from pydantic import BaseModel, Field, field_validator


class TaskStatus(StrEnum):
    """Task progress state."""

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


class TaskPriority(StrEnum):
    """Task priority."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def parse_datetime(value: Any) -> Any:
    """Parse ISO 8601 strings (date-only allowed) into aware UTC datetimes.

    Naive values are taken to be UTC. Non-string, non-datetime values are
    returned unchanged for pydantic to reject.
    """
    if isinstance(value, str):
        try:
            value = isoparse(value)
        except ValueError as e:
            raise ValueError(f"Invalid date: {value}") from e
    if isinstance(value, datetime):
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)
    return value


class GeoPoint(BaseModel):
    """GeoJSON point; coordinates are ordered [longitude, latitude]."""

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]

    @classmethod
    def from_lat_lng(cls, *, latitude: float, longitude: float) -> "GeoPoint":
        return cls(coordinates=(longitude, latitude))

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    title: str = Field(..., description="Task title")
    description: str = Field(..., description="Detailed task description")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Current progress state")
    due_date: datetime = Field(..., description="When the task is due")
    user_id: str = Field(..., description="Assignee (owner) user ID")
    assigned_by_id: str = Field(..., description="ID of the user who created the task")
    location: GeoPoint | None = Field(default=None, description="Optional task location")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    created: datetime = Field(..., description="Creation timestamp")
    updated: datetime = Field(..., description="Last update timestamp")

    @field_validator("due_date", "created", "updated", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_datetime(v)

    def is_overdue(self, now: datetime | None = None) -> bool:
        """True iff the due date has passed and the task is not done."""
        current = now or datetime.now(UTC)
        return self.due_date < current and self.status != TaskStatus.DONE
