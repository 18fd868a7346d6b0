"""Document router: uploads, role-scoped reads, and the approval decision."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, status

from src.domain.create_models import DocumentCreate
from src.domain.update_models import DocumentStatusUpdate
from src.domain.user import User
from src.interface.dependencies import get_current_user
from src.interface.presenters import ReferenceResolver, envelope, present_document, present_documents
from src.services import document_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("")
async def list_documents(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    documents = await document_service.list_documents(actor=current_user)
    return envelope(data=await present_documents(documents), count=len(documents))


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_document(
    request: DocumentCreate,
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    document = await document_service.upload_document(actor=current_user, request=request)
    return envelope(data=await present_document(document, ReferenceResolver()))


@router.get("/pending")
async def list_pending_documents(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    documents = await document_service.list_pending_documents(actor=current_user)
    return envelope(data=await present_documents(documents), count=len(documents))


@router.get("/task/{task_id}")
async def list_documents_for_task(task_id: str, current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    documents = await document_service.list_documents_for_task(actor=current_user, task_id=task_id)
    return envelope(data=await present_documents(documents), count=len(documents))


@router.get("/{document_id}")
async def get_document(document_id: str, current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    document = await document_service.get_document(actor=current_user, document_id=document_id)
    return envelope(data=await present_document(document, ReferenceResolver()))


@router.put("/{document_id}/status")
async def decide_document(
    document_id: str,
    update: DocumentStatusUpdate,
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Approve or reject a pending document (admin only)."""
    document = await document_service.decide_document(
        actor=current_user,
        document_id=document_id,
        decision=update.status,
        notes=update.notes,
    )
    return envelope(
        data=await present_document(document, ReferenceResolver()),
        message=f"Document {document.status.value.lower()} successfully",
    )


@router.delete("/{document_id}")
async def delete_document(document_id: str, current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    await document_service.delete_document(actor=current_user, document_id=document_id)
    return envelope(data={}, message="Document deleted successfully")
