"""Domain models and DTOs."""

from src.domain.create_models import DocumentCreate, LoginRequest, RegisterRequest, TaskCreate
from src.domain.document import AuditAction, AuditEntry, Document, DocumentStatus, FileType
from src.domain.task import GeoPoint, Task, TaskPriority, TaskStatus
from src.domain.update_models import (
    DocumentStatusUpdate,
    PasswordUpdate,
    TaskStatusUpdate,
    TaskUpdate,
    UserDetailsUpdate,
)
from src.domain.user import User, UserRole


__all__ = [
    "AuditAction",
    "AuditEntry",
    "Document",
    "DocumentCreate",
    "DocumentStatus",
    "DocumentStatusUpdate",
    "FileType",
    "GeoPoint",
    "LoginRequest",
    "PasswordUpdate",
    "RegisterRequest",
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskStatus",
    "TaskStatusUpdate",
    "TaskUpdate",
    "User",
    "UserDetailsUpdate",
    "UserRole",
]
