"""Authorization gate: role- and ownership-based checks for every task/document operation.

Callers resolve the target resource first, so a missing resource surfaces as
NotFoundError before any ownership check runs.
"""

import logging
from enum import StrEnum

from src.core.errors import AuthorizationError
from src.core.logging import log_with_user_context
from src.domain.user import User


logger = logging.getLogger(__name__)


class Operation(StrEnum):
    """Operations guarded by the gate."""

    READ_TASK = "read_task"
    CREATE_TASK = "create_task"
    UPDATE_TASK = "update_task"
    UPDATE_TASK_STATUS = "update_task_status"
    DELETE_TASK = "delete_task"
    LIST_USER_TASKS = "list_user_tasks"
    READ_DOCUMENT = "read_document"
    LIST_TASK_DOCUMENTS = "list_task_documents"
    UPLOAD_DOCUMENT = "upload_document"
    DECIDE_DOCUMENT = "decide_document"
    DELETE_DOCUMENT = "delete_document"
    LIST_PENDING_DOCUMENTS = "list_pending_documents"
    LIST_USERS = "list_users"


# Allowed for the resource owner or any admin
_OWNER_OR_ADMIN = {
    Operation.READ_TASK,
    Operation.UPDATE_TASK,
    Operation.UPDATE_TASK_STATUS,
    Operation.DELETE_TASK,
    Operation.READ_DOCUMENT,
    Operation.LIST_TASK_DOCUMENTS,
    Operation.DELETE_DOCUMENT,
}

_ADMIN_ONLY = {
    Operation.LIST_USER_TASKS,
    Operation.DECIDE_DOCUMENT,
    Operation.LIST_PENDING_DOCUMENTS,
    Operation.LIST_USERS,
}

_DENIAL_MESSAGES = {
    Operation.READ_TASK: "Not authorized to access this task",
    Operation.CREATE_TASK: "Not authorized to assign tasks to other users",
    Operation.UPDATE_TASK: "Not authorized to update this task",
    Operation.UPDATE_TASK_STATUS: "Not authorized to update this task",
    Operation.DELETE_TASK: "Not authorized to delete this task",
    Operation.LIST_USER_TASKS: "Not authorized to view tasks by user",
    Operation.READ_DOCUMENT: "Not authorized to access this document",
    Operation.LIST_TASK_DOCUMENTS: "Not authorized to access documents for this task",
    Operation.UPLOAD_DOCUMENT: "Not authorized to add document to this task",
    Operation.DECIDE_DOCUMENT: "Not authorized to approve or reject documents",
    Operation.DELETE_DOCUMENT: "Not authorized to delete this document",
    Operation.LIST_PENDING_DOCUMENTS: "Not authorized to view pending documents",
    Operation.LIST_USERS: "Not authorized to list users",
}

REASSIGN_DENIED_MESSAGE = "Not authorized to reassign tasks"


def _denial(actor: User, operation: Operation, *, owner_id: str | None, assignee_id: str | None) -> str | None:
    """Return the denial message for the request, or None if it is allowed."""
    if operation in _ADMIN_ONLY:
        return None if actor.is_admin else _DENIAL_MESSAGES[operation]

    if operation == Operation.CREATE_TASK:
        # Non-admins may only assign to themselves
        if actor.is_admin or assignee_id is None or assignee_id == actor.id:
            return None
        return _DENIAL_MESSAGES[operation]

    if operation == Operation.UPLOAD_DOCUMENT:
        # Uploader is forced to the task owner, so only the owner may upload
        return None if owner_id == actor.id else _DENIAL_MESSAGES[operation]

    if operation in _OWNER_OR_ADMIN:
        if not actor.is_admin and owner_id != actor.id:
            return _DENIAL_MESSAGES[operation]
        if (
            operation == Operation.UPDATE_TASK
            and not actor.is_admin
            and assignee_id is not None
            and assignee_id != owner_id
        ):
            return REASSIGN_DENIED_MESSAGE
        return None

    msg = f"Unknown operation: {operation}"
    raise ValueError(msg)


def is_allowed(
    actor: User,
    operation: Operation,
    *,
    owner_id: str | None = None,
    assignee_id: str | None = None,
) -> bool:
    """Decide whether ``actor`` may perform ``operation``.

    Args:
        actor: Authenticated user performing the operation
        operation: Operation being attempted
        owner_id: Owning user of the target task (the parent task for documents)
        assignee_id: Requested assignee for task create/update, None if not given

    Returns:
        True if allowed
    """
    return _denial(actor, operation, owner_id=owner_id, assignee_id=assignee_id) is None


def authorize(
    actor: User,
    operation: Operation,
    *,
    owner_id: str | None = None,
    assignee_id: str | None = None,
) -> None:
    """Raise AuthorizationError unless ``actor`` may perform ``operation``."""
    message = _denial(actor, operation, owner_id=owner_id, assignee_id=assignee_id)
    if message is None:
        return

    log_with_user_context(
        logger,
        "warning",
        "Access denied",
        user_id=actor.id,
        operation=operation.value,
        owner_id=owner_id,
    )
    raise AuthorizationError(message)
