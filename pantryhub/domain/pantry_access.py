"""Pantry access (user to pantry relationship) models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from pantryhub.domain.timestamps import as_utc


class AccessLevel(StrEnum):
    """Level of access a user holds for one pantry."""

    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    VIEWER = "viewer"


class PantryAccess(BaseModel):
    """Grants one user an access level on one pantry. Unique per (pantry_id, user_id)."""

    pantry_id: str
    user_id: str
    access_level: AccessLevel
    is_contact_agent: bool = Field(default=False, description="Whether this user is the pantry's designated contact")
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: datetime) -> datetime:
        """Normalize timestamps to UTC, taking naive values as UTC."""
        return as_utc(v)
