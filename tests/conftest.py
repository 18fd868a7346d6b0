"""Pytest configuration and shared fixtures."""

import pytest

from src.core.config import settings


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Use the cheapest bcrypt work factor so tests that register users stay fast."""
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture
def sample_user_data():
    """Returns sample registration data for testing."""
    return {
        "name": "Test User",
        "email": "test@example.com",
        "password": "securepass123",
    }



