"""User domain models and enums."""

import re
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from pantryhub.domain.timestamps import as_utc


# Constants for validation
MAX_NAME_LENGTH = 100
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookups: trimmed and lower-cased."""
    return email.strip().lower()


class UserRole(StrEnum):
    """Role of a user across the whole system."""

    ADMIN = "admin"
    AGENT = "agent"


class User(BaseModel):
    """A user acting as the agent of a food pantry."""

    id: str = Field(..., description="Random UUID assigned at creation")
    email: str = Field(..., description="Login email, unique across users")
    password_hash: str = Field(..., description="Self-describing argon2 hash")
    first_name: str = Field(..., description="Given name")
    last_name: str = Field(..., description="Family name")
    pantry_id: str | None = Field(default=None, description="Id of the associated pantry, once assigned")
    role: UserRole | None = Field(default=None, description="System-wide role, if any")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    updated_at: datetime = Field(..., description="Time of the last mutation (UTC)")

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: datetime) -> datetime:
        """Normalize timestamps to UTC, taking naive values as UTC."""
        return as_utc(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Normalize the email, then check it has a local part and a dotted domain."""
        email = normalize_email(v)
        if not EMAIL_PATTERN.match(email):
            raise ValueError("Email address is not valid")
        return email

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate names are non-blank and of reasonable length."""
        if not v.strip():
            raise ValueError("Name cannot be empty")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")
        return v
