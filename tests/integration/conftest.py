"""Pytest configuration and fixtures for integration tests."""

import logging

import pytest
from fastapi.testclient import TestClient

from src.core import db_client
from src.core.config import settings
from src.main import app


logger = logging.getLogger(__name__)


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch):
    """Point db_client at a fresh SQLite file with the full schema."""
    db_path = tmp_path / "taskflow-test.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(db_path))

    await db_client.init_db()
    logger.info("Test database ready", extra={"db_path": str(db_path)})

    yield db_path

    await db_client.close_connection()


@pytest.fixture
def client(tmp_path, monkeypatch):
    """FastAPI test client backed by a fresh SQLite file."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "taskflow-api.db"))

    with TestClient(app) as test_client:
        yield test_client
