"""Document service: upload, role-scoped reads, and deletion of task documents."""

import logging
from typing import Any

from src.core import db_client
from src.core.errors import NotFoundError
from src.core.logging import span
from src.domain.create_models import DocumentCreate
from src.domain.document import Document, DocumentStatus, infer_file_type
from src.domain.task import Task
from src.domain.user import User
from src.services import authorization, document_state_machine, task_service
from src.services.authorization import Operation


logger = logging.getLogger(__name__)


def _to_document(record: dict[str, Any]) -> Document:
    return Document.model_validate(record)


def normalize_new_document(*, request: DocumentCreate, task: Task) -> dict[str, Any]:
    """Build the record for a new document.

    The uploader is always the task's owner, whatever the request claims.
    """
    if request.user_id is not None and request.user_id != task.user_id:
        logger.info(
            "Ignoring supplied uploader",
            extra={"task_id": task.id, "supplied_user_id": request.user_id, "user_id": task.user_id},
        )

    entry = document_state_machine.created_entry(uploader_id=task.user_id)
    return {
        "name": request.name,
        "file_url": request.file_url,
        "status": DocumentStatus.PENDING.value,
        "task_id": task.id,
        "user_id": task.user_id,
        "file_type": infer_file_type(request.file_url).value,
        "file_size": request.file_size,
        "audit_log": document_state_machine.serialize_audit_log([entry]),
    }


async def find_document(*, document_id: str) -> Document | None:
    try:
        record = await db_client.get_record(collection="documents", record_id=document_id)
    except db_client.RecordNotFoundError:
        return None
    return _to_document(record)


async def _get_document_and_owner(document_id: str) -> tuple[Document, str | None]:
    document = await find_document(document_id=document_id)
    if document is None:
        raise NotFoundError("Document not found")
    task = await task_service.find_task(task_id=document.task_id)
    return document, task.user_id if task else None


async def upload_document(*, actor: User, request: DocumentCreate) -> Document:
    """Attach a document to one of the actor's own tasks.

    Raises:
        NotFoundError: If the task does not exist
        AuthorizationError: If the actor does not own the task
    """
    with span("document_service.upload_document"):
        task = await task_service.get_task_unchecked(task_id=request.task_id)
        authorization.authorize(actor, Operation.UPLOAD_DOCUMENT, owner_id=task.user_id)

        record = await db_client.create_record(
            collection="documents",
            data=normalize_new_document(request=request, task=task),
        )

        logger.info(
            "Uploaded document",
            extra={"document_id": record["id"], "task_id": task.id, "user_id": actor.id},
        )
        return _to_document(record)


async def get_document(*, actor: User, document_id: str) -> Document:
    """Get a document whose parent task the actor owns (any document for admins)."""
    with span("document_service.get_document"):
        document, owner_id = await _get_document_and_owner(document_id)
        authorization.authorize(actor, Operation.READ_DOCUMENT, owner_id=owner_id)
        return document


async def list_documents(*, actor: User) -> list[Document]:
    """List all documents for admins, documents of own tasks otherwise; newest first."""
    with span("document_service.list_documents"):
        if actor.is_admin:
            filter_query = ""
        else:
            tasks = await task_service.list_my_tasks(actor=actor)
            if not tasks:
                return []
            task_conditions = " || ".join(f'task_id = "{db_client.sanitize_param(task.id)}"' for task in tasks)
            filter_query = f"({task_conditions})"

        records = await db_client.list_records(
            collection="documents",
            filter_query=filter_query,
            sort="-created",
            per_page=None,
        )
        return [_to_document(record) for record in records]


async def list_documents_for_task(*, actor: User, task_id: str) -> list[Document]:
    """List the documents of one task (owner or admin); newest first."""
    with span("document_service.list_documents_for_task"):
        task = await task_service.get_task_unchecked(task_id=task_id)
        authorization.authorize(actor, Operation.LIST_TASK_DOCUMENTS, owner_id=task.user_id)

        records = await db_client.list_records(
            collection="documents",
            where={"task_id": task_id},
            sort="-created",
            per_page=None,
        )
        return [_to_document(record) for record in records]


async def list_pending_documents(*, actor: User) -> list[Document]:
    """List documents awaiting a decision (admin only); newest first."""
    with span("document_service.list_pending_documents"):
        authorization.authorize(actor, Operation.LIST_PENDING_DOCUMENTS)
        records = await db_client.list_records(
            collection="documents",
            where={"status": DocumentStatus.PENDING.value},
            sort="-created",
            per_page=None,
        )
        return [_to_document(record) for record in records]


async def decide_document(
    *,
    actor: User,
    document_id: str,
    decision: DocumentStatus | str | None,
    notes: str | None = None,
) -> Document:
    """Approve or reject a document through the approval state machine."""
    return await document_state_machine.decide(
        document_id=document_id,
        actor=actor,
        decision=decision,
        notes=notes,
    )


async def delete_document(*, actor: User, document_id: str) -> None:
    """Delete a document (owner of the parent task, or admin)."""
    with span("document_service.delete_document"):
        _, owner_id = await _get_document_and_owner(document_id)
        authorization.authorize(actor, Operation.DELETE_DOCUMENT, owner_id=owner_id)

        try:
            await db_client.delete_record(collection="documents", record_id=document_id)
        except db_client.RecordNotFoundError as e:
            raise NotFoundError("Document not found") from e
        logger.info("Deleted document", extra={"document_id": document_id, "user_id": actor.id})
