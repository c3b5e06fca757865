"""Pantry domain models and enums."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from pantryhub.domain.timestamps import as_utc


class OptStatus(StrEnum):
    """Enrollment tier of a pantry.

    T1: opted out, no feature flags and no inventory.
    T2: opted in with feature flags, listed in the pantry hub, no inventory.
    T3: fully opted in with feature flags and inventory.
    """

    T1 = "T1"
    T2 = "T2"
    T3 = "T3"


class Address(BaseModel):
    """Postal address of a pantry."""

    street: str
    unit: str | None = None
    city: str
    state: str
    zipcode: str


class Pantry(BaseModel):
    """A food pantry enrolled in the program."""

    id: str = Field(..., description="Random UUID assigned at creation")
    name: str = Field(..., description="Name of the food pantry")
    is_self_managed: bool = Field(..., description="Whether the pantry manages its own listing")
    opt_status: OptStatus = Field(..., description="Enrollment tier")
    address: Address
    phone: str = Field(..., description="Contact phone number")
    email: str = Field(..., description="Contact email")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    updated_at: datetime = Field(..., description="Time of the last mutation (UTC)")

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: datetime) -> datetime:
        """Normalize timestamps to UTC, taking naive values as UTC."""
        return as_utc(v)
