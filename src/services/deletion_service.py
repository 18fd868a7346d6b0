"""Deletion service for tasks and their dependent documents.

Deleting a task is a two-step cascade run as one transaction: remove every
document attached to the task, then remove the task. A failure in either step
rolls both back, so no orphaned documents or half-deleted document sets remain.
"""

import logging

from src.core import db_client
from src.core.errors import NotFoundError
from src.core.logging import span
from src.domain.user import User
from src.services import authorization, task_service
from src.services.authorization import Operation


logger = logging.getLogger(__name__)


async def cascade_delete_task(*, task_id: str) -> int:
    """Delete a task and all of its documents atomically.

    Args:
        task_id: Task to delete

    Returns:
        Number of documents deleted along with the task

    Raises:
        NotFoundError: If the task does not exist
        db_client.DatabaseError: If either step fails (nothing is deleted)
    """
    with span("deletion_service.cascade_delete_task"):
        async with db_client.transaction():
            deleted_documents = await db_client.delete_records(
                collection="documents",
                filter_query=f'task_id = "{db_client.sanitize_param(task_id)}"',
            )
            try:
                await db_client.delete_record(collection="tasks", record_id=task_id)
            except db_client.RecordNotFoundError as e:
                raise NotFoundError("Task not found") from e

        logger.info(
            "Deleted task with documents",
            extra={"task_id": task_id, "deleted_documents": deleted_documents},
        )
        return deleted_documents


async def delete_task(*, actor: User, task_id: str) -> int:
    """Delete a task the actor owns (any task for admins), cascading to its documents.

    Returns:
        Number of documents deleted along with the task
    """
    with span("deletion_service.delete_task"):
        task = await task_service.get_task_unchecked(task_id=task_id)
        authorization.authorize(actor, Operation.DELETE_TASK, owner_id=task.user_id)
        return await cascade_delete_task(task_id=task_id)
