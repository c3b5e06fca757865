from pantryhub.services import (
    pantry_access_service,
    pantry_service,
    user_service,
)


__all__ = [
    "pantry_access_service",
    "pantry_service",
    "user_service",
]
