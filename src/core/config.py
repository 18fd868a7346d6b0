"""Configuration management for taskflow."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./taskflow.db", description="Path to the SQLite database file")

    # Bearer Token Configuration
    secret_key: str = Field(default="change-me", description="Secret used to sign bearer tokens")
    token_max_age_seconds: int = Field(
        default=30 * 24 * 60 * 60, description="Maximum bearer token age in seconds (defaults to 30 days)"
    )
    bcrypt_rounds: int = Field(default=12, ge=4, le=31, description="bcrypt work factor for password hashes")

    # Runtime Environment
    environment: str = Field(default="development", description="Deployment environment name")
    cors_origins: str = Field(default="http://localhost:3000", description="Comma-separated list of allowed origins")

    # Server Configuration
    host: str = Field(default="127.0.0.1", description="Interface uvicorn binds to")
    port: int = Field(default=8000, ge=1, le=65535, description="Port uvicorn listens on")
    reload: bool = Field(default=False, description="Restart the server when source files change")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    @property
    def is_production(self) -> bool:
        """Return True when running in production."""
        return self.environment.lower() == "production"

    @property
    def cors_origin_list(self) -> list[str]:
        """Allowed CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Field limits
    MAX_USER_NAME_LENGTH: int = 50
    MAX_TASK_TITLE_LENGTH: int = 100
    MAX_TASK_DESCRIPTION_LENGTH: int = 500
    MAX_DOCUMENT_NAME_LENGTH: int = 255
    MAX_AUDIT_NOTES_LENGTH: int = 500
    MIN_PASSWORD_LENGTH: int = 6

    # bcrypt only looks at the first 72 bytes of a password
    BCRYPT_MAX_BYTES: int = 72

    # Geo queries
    EARTH_RADIUS_KM: float = 6378.0


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
