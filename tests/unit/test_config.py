"""Tests for configuration validation."""

import pytest

from src.core.config import Settings, constants


def test_require_credential_with_valid_value() -> None:
    """Test require_credential returns value when credential is set."""
    settings = Settings(secret_key="s3cret")

    assert settings.require_credential("secret_key", "Bearer token signing") == "s3cret"


def test_require_credential_with_empty_string_raises_error() -> None:
    """Test require_credential raises ValueError naming the environment variable."""
    settings = Settings(secret_key="")

    with pytest.raises(ValueError, match="SECRET_KEY"):
        settings.require_credential("secret_key", "Bearer token signing")


def test_is_production() -> None:
    assert Settings(environment="Production").is_production
    assert not Settings(environment="development").is_production


def test_cors_origin_list_splits_and_strips() -> None:
    settings = Settings(cors_origins="http://a.example, http://b.example ,")

    assert settings.cors_origin_list == ["http://a.example", "http://b.example"]


def test_bcrypt_rounds_are_bounded() -> None:
    with pytest.raises(ValueError):
        Settings(bcrypt_rounds=2)


def test_earth_radius_constant() -> None:
    assert constants.EARTH_RADIUS_KM == 6378


def test_server_defaults(monkeypatch) -> None:
    """Test the server binds to localhost without reload by default."""
    for name in ("HOST", "PORT", "RELOAD"):
        monkeypatch.delenv(name, raising=False)
    defaults = Settings(_env_file=None)

    assert defaults.host == "127.0.0.1"
    assert defaults.port == 8000
    assert defaults.reload is False
