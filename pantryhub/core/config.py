"""Configuration management for pantryhub."""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pantryhub.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    sqlite_db_path: str = Field(default="pantry_data/pantryhub.db", description="Path to the SQLite item store")

    # Token Configuration
    token_secret: str | None = Field(default=None, description="Shared secret used to sign bearer tokens")
    token_ttl_hours: int = Field(default=24, description="Lifetime of issued bearer tokens (in hours)")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    environment: str = Field(default="development", description="Deployment environment name")

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Refuse to run production without a signing secret."""
        if self.environment == "production" and not self.token_secret:
            raise ValueError("TOKEN_SECRET must be set in production")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ConfigurationError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ConfigurationError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Tables
    USERS_TABLE: str = "Users"
    PANTRIES_TABLE: str = "Pantries"
    PANTRY_ACCESS_TABLE: str = "PantryAccess"

    # Secondary indexes
    EMAIL_INDEX: str = "EmailIndex"
    ROLE_INDEX: str = "RoleIndex"
    SELF_MANAGED_INDEX: str = "SelfManagedIndex"
    USER_ACCESS_INDEX: str = "UserAccessIndex"
    ACCESS_LEVEL_INDEX: str = "AccessLevelIndex"
    CONTACT_AGENT_INDEX: str = "ContactAgentIndex"

    # Credentials
    PASSWORD_MIN_LENGTH: int = 8

    # HTTP
    BEARER_SCHEME: str = "Bearer"

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
