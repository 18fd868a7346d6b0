"""Document approval state machine.

Pending -> Approved and Pending -> Rejected are the only transitions; both
targets are terminal. Every transition appends exactly one audit entry.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from src.core import db_client
from src.core.errors import ConflictError, NotFoundError, ValidationError
from src.core.logging import span
from src.domain.document import AuditAction, AuditEntry, Document, DocumentStatus
from src.domain.user import User
from src.services import authorization
from src.services.authorization import Operation


logger = logging.getLogger(__name__)

UPLOAD_NOTES = "Document uploaded"

ALLOWED_TRANSITIONS: dict[DocumentStatus, set[DocumentStatus]] = {
    DocumentStatus.PENDING: {DocumentStatus.APPROVED, DocumentStatus.REJECTED},
    DocumentStatus.APPROVED: set(),
    DocumentStatus.REJECTED: set(),
}


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def parse_decision(value: str | None) -> DocumentStatus:
    """Validate an approve/reject decision.

    Raises:
        ValidationError: If the value is not Approved or Rejected
    """
    if value not in (DocumentStatus.APPROVED.value, DocumentStatus.REJECTED.value):
        raise ValidationError("Please provide a valid status (Approved or Rejected)")
    return DocumentStatus(value)


def created_entry(*, uploader_id: str) -> AuditEntry:
    """Initial audit entry of every document."""
    return AuditEntry(
        action=AuditAction.CREATED,
        user_id=uploader_id,
        timestamp=datetime.now(UTC),
        notes=UPLOAD_NOTES,
    )


def decision_entry(*, decision: DocumentStatus, actor_id: str, notes: str | None) -> AuditEntry:
    """Audit entry recording an approve/reject decision."""
    return AuditEntry(
        action=AuditAction(decision.value),
        user_id=actor_id,
        timestamp=datetime.now(UTC),
        notes=notes or f"Document {decision.value.lower()} by admin",
    )


def _already_decided(status: DocumentStatus) -> ConflictError:
    return ConflictError(f"Document has already been {status.value.lower()}")


def serialize_audit_log(entries: list[AuditEntry]) -> list[dict[str, Any]]:
    return [entry.model_dump(mode="json") for entry in entries]


async def decide(
    *,
    document_id: str,
    actor: User,
    decision: DocumentStatus | str | None,
    notes: str | None = None,
) -> Document:
    """Approve or reject a pending document.

    Args:
        document_id: Document to decide on
        actor: User making the decision (must be admin)
        decision: Approved or Rejected
        notes: Optional reviewer notes; a default message is used when empty

    Returns:
        The updated document with its full audit trail

    Raises:
        ValidationError: If the decision is not Approved or Rejected
        NotFoundError: If the document does not exist
        ConflictError: If the document was already approved or rejected
        AuthorizationError: If the actor is not an admin
    """
    with span("document_state_machine.decide"):
        target = parse_decision(decision)

        try:
            record = await db_client.get_record(collection="documents", record_id=document_id)
        except db_client.RecordNotFoundError as e:
            raise NotFoundError("Document not found") from e
        document = Document.model_validate(record)

        # Guard: terminal states never transition again
        if not can_transition(document.status, target):
            raise _already_decided(document.status)

        authorization.authorize(actor, Operation.DECIDE_DOCUMENT)

        audit_log = [*document.audit_log, decision_entry(decision=target, actor_id=actor.id, notes=notes)]

        # Write only while the document is still Pending
        updated = await db_client.update_record_if(
            collection="documents",
            record_id=document_id,
            data={"status": target.value, "audit_log": serialize_audit_log(audit_log)},
            expected={"status": DocumentStatus.PENDING.value},
        )
        if updated is None:
            current = Document.model_validate(await db_client.get_record(collection="documents", record_id=document_id))
            logger.warning(
                "Lost concurrent document decision",
                extra={"document_id": document_id, "user_id": actor.id, "status": current.status.value},
            )
            raise _already_decided(current.status)

        logger.info(
            "Document decided",
            extra={"document_id": document_id, "user_id": actor.id, "decision": target.value},
        )
        return Document.model_validate(updated)
