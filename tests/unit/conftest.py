"""Pytest configuration and fixtures for unit tests."""

import pytest

from src.domain.user import User, UserRole
from src.services import document_service, task_service
from tests.unit.factories import document_request, register_user, task_request
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient."""

    # Patch all db_client functions
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.update_record_if", in_memory_db.update_record_if)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.delete_records", in_memory_db.delete_records)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("src.core.db_client.get_first_record", in_memory_db.get_first_record)
    monkeypatch.setattr("src.core.db_client.transaction", in_memory_db.transaction)

    return in_memory_db


@pytest.fixture
async def alice(patched_db) -> User:
    return await register_user("Alice", "alice@example.com")


@pytest.fixture
async def bob(patched_db) -> User:
    return await register_user("Bob", "bob@example.com")


@pytest.fixture
async def admin(patched_db) -> User:
    return await register_user("Admin", "admin@example.com", UserRole.ADMIN)


@pytest.fixture
async def alice_task(alice):
    """A task Alice created for herself."""
    return await task_service.create_task(actor=alice, request=task_request())


@pytest.fixture
async def alice_document(alice, alice_task):
    """A pending document on Alice's task."""
    return await document_service.upload_document(actor=alice, request=document_request(alice_task.id))
