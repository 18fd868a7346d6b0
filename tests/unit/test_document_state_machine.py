"""Unit tests for the document approval state machine."""

import asyncio

import pytest

from src.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from src.domain.document import AuditAction, DocumentStatus
from src.services import document_state_machine
from src.services.document_state_machine import can_transition, parse_decision


@pytest.mark.unit
class TestTransitions:
    """Tests for the transition table."""

    @pytest.mark.parametrize("target", [DocumentStatus.APPROVED, DocumentStatus.REJECTED])
    def test_pending_can_be_decided(self, target):
        assert can_transition(DocumentStatus.PENDING, target)

    @pytest.mark.parametrize("current", [DocumentStatus.APPROVED, DocumentStatus.REJECTED])
    @pytest.mark.parametrize("target", list(DocumentStatus))
    def test_decided_states_are_terminal(self, current, target):
        assert not can_transition(current, target)

    def test_pending_to_pending_is_not_a_transition(self):
        assert not can_transition(DocumentStatus.PENDING, DocumentStatus.PENDING)


@pytest.mark.unit
class TestParseDecision:
    """Tests for parse_decision."""

    @pytest.mark.parametrize("value", ["Approved", "Rejected"])
    def test_valid(self, value):
        assert parse_decision(value) == DocumentStatus(value)

    @pytest.mark.parametrize("value", [None, "", "Pending", "approved", "Done"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError, match=r"Please provide a valid status \(Approved or Rejected\)"):
            parse_decision(value)


@pytest.mark.unit
class TestDecide:
    """Tests for decide."""

    async def test_approve_appends_audit_entry(self, admin, alice, alice_document):
        document = await document_state_machine.decide(
            document_id=alice_document.id,
            actor=admin,
            decision="Approved",
            notes="Looks good",
        )

        assert document.status == DocumentStatus.APPROVED
        assert [entry.action for entry in document.audit_log] == [AuditAction.CREATED, AuditAction.APPROVED]
        assert document.audit_log[0].user_id == alice.id
        assert document.audit_log[1].user_id == admin.id
        assert document.audit_log[1].notes == "Looks good"

    async def test_default_notes(self, admin, alice_document):
        document = await document_state_machine.decide(
            document_id=alice_document.id,
            actor=admin,
            decision="Rejected",
        )

        assert document.status == DocumentStatus.REJECTED
        assert document.audit_log[-1].notes == "Document rejected by admin"

    async def test_second_decision_conflicts_and_leaves_audit_unchanged(self, admin, alice_document, patched_db):
        await document_state_machine.decide(document_id=alice_document.id, actor=admin, decision="Approved")

        with pytest.raises(ConflictError, match="Document has already been approved"):
            await document_state_machine.decide(document_id=alice_document.id, actor=admin, decision="Rejected")

        stored = await patched_db.get_record(collection="documents", record_id=alice_document.id)
        assert stored["status"] == "Approved"
        assert len(stored["audit_log"]) == 2

    async def test_non_admin_denied(self, alice, alice_document):
        with pytest.raises(AuthorizationError):
            await document_state_machine.decide(document_id=alice_document.id, actor=alice, decision="Approved")

    async def test_decided_document_reports_conflict_before_permission(self, admin, alice, alice_document):
        await document_state_machine.decide(document_id=alice_document.id, actor=admin, decision="Rejected")

        with pytest.raises(ConflictError, match="Document has already been rejected"):
            await document_state_machine.decide(document_id=alice_document.id, actor=alice, decision="Approved")

    async def test_missing_document(self, admin):
        with pytest.raises(NotFoundError, match="Document not found"):
            await document_state_machine.decide(document_id="99999", actor=admin, decision="Approved")

    async def test_invalid_decision_is_checked_first(self, alice):
        with pytest.raises(ValidationError):
            await document_state_machine.decide(document_id="99999", actor=alice, decision="Pending")

    async def test_concurrent_decisions_only_one_wins(self, admin, alice_document, patched_db):
        results = await asyncio.gather(
            document_state_machine.decide(document_id=alice_document.id, actor=admin, decision="Approved"),
            document_state_machine.decide(document_id=alice_document.id, actor=admin, decision="Rejected"),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(successes) == 1
        assert len(conflicts) == 1

        stored = await patched_db.get_record(collection="documents", record_id=alice_document.id)
        assert len(stored["audit_log"]) == 2
        assert stored["status"] == successes[0].status.value

    async def test_lost_race_raises_conflict(self, admin, alice_document, monkeypatch, patched_db):
        """A decision that read Pending but lost the conditional write reports a conflict."""
        original_update_if = patched_db.update_record_if

        async def decided_meanwhile(**kwargs):
            await patched_db.update_record(
                collection="documents",
                record_id=alice_document.id,
                data={"status": "Rejected"},
            )
            return await original_update_if(**kwargs)

        monkeypatch.setattr("src.core.db_client.update_record_if", decided_meanwhile)

        with pytest.raises(ConflictError, match="Document has already been rejected"):
            await document_state_machine.decide(document_id=alice_document.id, actor=admin, decision="Approved")
