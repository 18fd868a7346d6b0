"""Document domain models, audit trail entries, and derived fields."""

import math
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.domain.task import parse_datetime


SECONDS_PER_DAY = 60 * 60 * 24
KIB = 1024
MIB = 1024 * 1024


class DocumentStatus(StrEnum):
    """Approval status. Pending is the only non-terminal state."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class AuditAction(StrEnum):
    """Actions recorded in a document's audit log."""

    CREATED = "Created"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class FileType(StrEnum):
    """Coarse file type inferred from the file URL."""

    PDF = "pdf"
    DOC = "doc"
    DOCX = "docx"
    TXT = "txt"
    IMAGE = "image"
    OTHER = "other"


_EXTENSION_FILE_TYPES: dict[str, FileType] = {
    "pdf": FileType.PDF,
    "doc": FileType.DOC,
    "docx": FileType.DOCX,
    "txt": FileType.TXT,
    "jpg": FileType.IMAGE,
    "jpeg": FileType.IMAGE,
    "png": FileType.IMAGE,
    "gif": FileType.IMAGE,
}


def infer_file_type(file_url: str) -> FileType:
    """Infer the file type from the text after the URL's last dot."""
    extension = file_url.rsplit(".", 1)[-1].lower()
    return _EXTENSION_FILE_TYPES.get(extension, FileType.OTHER)


def format_file_size(size: int) -> str:
    """Render a byte count as B, KB, or MB (binary scaling)."""
    if size < KIB:
        return f"{size} B"
    if size < MIB:
        return f"{size / KIB:.2f} KB"
    return f"{size / MIB:.2f} MB"


class AuditEntry(BaseModel):
    """One append-only audit log entry."""

    action: AuditAction
    user_id: str
    timestamp: datetime
    notes: str = ""

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        return parse_datetime(v)


class Document(BaseModel):
    """Document data transfer object."""

    id: str = Field(..., description="Unique document ID from database")
    name: str = Field(..., description="Document name")
    file_url: str = Field(..., description="External URL of the file")
    status: DocumentStatus = Field(default=DocumentStatus.PENDING, description="Approval status")
    task_id: str = Field(..., description="Parent task ID")
    user_id: str = Field(..., description="Uploader ID (always the task owner)")
    file_type: FileType = Field(default=FileType.OTHER, description="Type inferred from the file URL")
    file_size: int = Field(default=0, ge=0, description="File size in bytes")
    audit_log: list[AuditEntry] = Field(default_factory=list, description="Status-changing actions, oldest first")
    created: datetime = Field(..., description="Creation timestamp")
    updated: datetime = Field(..., description="Last update timestamp")

    @field_validator("created", "updated", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_datetime(v)

    @property
    def formatted_file_size(self) -> str:
        return format_file_size(self.file_size)

    def days_since_upload(self, now: datetime | None = None) -> int:
        """Whole days since upload, rounded up; never negative."""
        current = now or datetime.now(UTC)
        elapsed = abs((current - self.created).total_seconds())
        return math.ceil(elapsed / SECONDS_PER_DAY)
