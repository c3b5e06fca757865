"""Domain models and DTOs."""

from pantryhub.domain.pantry import Address, OptStatus, Pantry
from pantryhub.domain.pantry_access import AccessLevel, PantryAccess
from pantryhub.domain.user import User, UserRole


__all__ = [
    "AccessLevel",
    "Address",
    "OptStatus",
    "Pantry",
    "PantryAccess",
    "User",
    "UserRole",
]
