"""JSON presentation of users, tasks, and documents in the response envelope.

References are "populated": a task's assignee and assigner, a document's
uploader and task, and every audit entry's user are rendered as small
summaries instead of bare IDs.
"""

from datetime import UTC, datetime
from typing import Any

from src.domain.document import Document
from src.domain.task import Task
from src.domain.user import User
from src.services import task_service, user_service


def envelope(
    *,
    data: Any = None,
    count: int | None = None,
    message: str | None = None,
    success: bool = True,
    **extra: Any,
) -> dict[str, Any]:
    """Build the standard ``{success, data?, count?, message?}`` response body."""
    body: dict[str, Any] = {"success": success}
    if data is not None:
        body["data"] = data
    if count is not None:
        body["count"] = count
    if message is not None:
        body["message"] = message
    body.update(extra)
    return body


def _iso(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def present_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "createdAt": _iso(user.created) if user.created else None,
    }


class ReferenceResolver:
    """Looks up referenced users and tasks once per response."""

    def __init__(self) -> None:
        self._users: dict[str, User | None] = {}
        self._tasks: dict[str, Task | None] = {}

    async def user(self, user_id: str, *, with_role: bool = True) -> dict[str, Any] | str:
        if user_id not in self._users:
            self._users[user_id] = await user_service.find_user(user_id=user_id)
        user = self._users[user_id]
        if user is None:
            return user_id
        summary: dict[str, Any] = {"id": user.id, "name": user.name, "email": user.email}
        if with_role:
            summary["role"] = user.role.value
        return summary

    async def task(self, task_id: str) -> dict[str, Any] | str:
        if task_id not in self._tasks:
            self._tasks[task_id] = await task_service.find_task(task_id=task_id)
        task = self._tasks[task_id]
        if task is None:
            return task_id
        return {"id": task.id, "title": task.title}


async def present_task(task: Task, resolver: ReferenceResolver, *, now: datetime | None = None) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status.value,
        "dueDate": _iso(task.due_date),
        "user": await resolver.user(task.user_id),
        "assignedBy": await resolver.user(task.assigned_by_id),
        "location": task.location.model_dump(mode="json") if task.location else None,
        "priority": task.priority.value,
        "isOverdue": task.is_overdue(now),
        "createdAt": _iso(task.created),
        "updatedAt": _iso(task.updated),
    }


async def present_tasks(tasks: list[Task]) -> list[dict[str, Any]]:
    resolver = ReferenceResolver()
    return [await present_task(task, resolver) for task in tasks]


async def present_document(
    document: Document,
    resolver: ReferenceResolver,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    return {
        "id": document.id,
        "name": document.name,
        "fileUrl": document.file_url,
        "status": document.status.value,
        "task": await resolver.task(document.task_id),
        "user": await resolver.user(document.user_id, with_role=False),
        "fileType": document.file_type.value,
        "fileSize": document.file_size,
        "formattedFileSize": document.formatted_file_size,
        "daysSinceUpload": document.days_since_upload(now),
        "auditLog": [
            {
                "action": entry.action.value,
                "user": await resolver.user(entry.user_id, with_role=False),
                "timestamp": _iso(entry.timestamp),
                "notes": entry.notes,
            }
            for entry in document.audit_log
        ],
        "createdAt": _iso(document.created),
        "updatedAt": _iso(document.updated),
    }


async def present_documents(documents: list[Document]) -> list[dict[str, Any]]:
    resolver = ReferenceResolver()
    return [await present_document(document, resolver) for document in documents]
