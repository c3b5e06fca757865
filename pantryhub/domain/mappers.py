"""Conversion between domain entities and stored attribute maps.

`*_to_item` never fails for a valid entity. `*_from_item` is total: a missing
required attribute, a value of the wrong type, or an unknown enum code yields
None instead of raising. Optional attributes (`pantry_id`, `role`,
`address.unit`) are left out of the map when absent and read back as None;
when present they must be well formed like any other attribute.

Timestamps are written as ISO-8601 UTC strings. A missing or malformed
timestamp is read as the current time and logged as
`timestamp_fallback_used`, so that one damaged field does not hide the
whole record.
"""

import logging
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from pantryhub.core.logging import log_with_context
from pantryhub.core.schema import AttributeMap
from pantryhub.domain.pantry import Address, OptStatus, Pantry
from pantryhub.domain.pantry_access import AccessLevel, PantryAccess
from pantryhub.domain.timestamps import as_utc
from pantryhub.domain.user import User, UserRole


logger = logging.getLogger(__name__)

EnumT = TypeVar("EnumT", bound=StrEnum)

TRUE_FLAG = "true"
FALSE_FLAG = "false"


# Attribute value helpers


def _s(value: str) -> dict[str, Any]:
    return {"S": value}


def _flag(value: bool) -> dict[str, Any]:
    return _s(TRUE_FLAG if value else FALSE_FLAG)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string ending in Z."""
    return as_utc(value).isoformat().replace("+00:00", "Z")


def get_string(item: AttributeMap, key: str) -> str | None:
    """Return the string stored under key, or None if absent or not a string."""
    value = item.get(key)
    if not isinstance(value, dict):
        return None
    text = value.get("S")
    return text if isinstance(text, str) else None


def is_malformed_optional(item: AttributeMap, key: str) -> bool:
    """Return True when an optional attribute is present but is not a string value."""
    return key in item and get_string(item, key) is None


def get_map(item: AttributeMap, key: str) -> AttributeMap | None:
    """Return the nested attribute map stored under key, or None."""
    value = item.get(key)
    if not isinstance(value, dict):
        return None
    nested = value.get("M")
    return nested if isinstance(nested, dict) else None


def get_flag(item: AttributeMap, key: str) -> bool | None:
    """Parse a boolean persisted as the string flag "true" or "false"."""
    text = get_string(item, key)
    if text == TRUE_FLAG:
        return True
    if text == FALSE_FLAG:
        return False
    return None


def get_enum(item: AttributeMap, key: str, enum_type: type[EnumT]) -> EnumT | None:
    """Parse an enum code, returning None for unknown codes rather than a default."""
    code = get_string(item, key)
    if code is None:
        return None
    try:
        return enum_type(code)
    except ValueError:
        return None


def get_timestamp(item: AttributeMap, key: str) -> datetime:
    """Parse a UTC timestamp, falling back to now when missing or malformed."""
    text = get_string(item, key)
    if text is not None:
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)

    log_with_context(
        logger,
        "warning",
        "timestamp_fallback_used",
        field=key,
        record_id=get_string(item, "id") or get_string(item, "pantry_id"),
    )
    return datetime.now(UTC)


def _build(model: type, **fields: Any) -> Any:
    """Construct a model from parsed fields, or None if any required field is missing or invalid."""
    try:
        return model(**fields)
    except PydanticValidationError:
        return None


# User


def user_to_item(user: User) -> AttributeMap:
    """Convert a User to its stored attribute map."""
    item: AttributeMap = {
        "id": _s(user.id),
        "email": _s(user.email),
        "password_hash": _s(user.password_hash),
        "first_name": _s(user.first_name),
        "last_name": _s(user.last_name),
        "created_at": _s(format_timestamp(user.created_at)),
        "updated_at": _s(format_timestamp(user.updated_at)),
    }
    if user.pantry_id is not None:
        item["pantry_id"] = _s(user.pantry_id)
    if user.role is not None:
        item["role"] = _s(user.role.value)
    return item


def user_from_item(item: AttributeMap) -> User | None:
    """Convert a stored attribute map to a User, or None if it is not a valid user."""
    required = {key: get_string(item, key) for key in ("id", "email", "password_hash", "first_name", "last_name")}
    if any(value is None for value in required.values()) or is_malformed_optional(item, "pantry_id"):
        return None

    role = None
    if "role" in item:
        role = get_enum(item, "role", UserRole)
        if role is None:
            return None

    return _build(
        User,
        **required,
        pantry_id=get_string(item, "pantry_id"),
        role=role,
        created_at=get_timestamp(item, "created_at"),
        updated_at=get_timestamp(item, "updated_at"),
    )


# Pantry


def address_to_item(address: Address) -> AttributeMap:
    """Convert an Address to a nested attribute map."""
    item: AttributeMap = {
        "street": _s(address.street),
        "city": _s(address.city),
        "state": _s(address.state),
        "zipcode": _s(address.zipcode),
    }
    if address.unit is not None:
        item["unit"] = _s(address.unit)
    return item


def address_from_item(item: AttributeMap) -> Address | None:
    """Convert a nested attribute map to an Address, or None."""
    required = {key: get_string(item, key) for key in ("street", "city", "state", "zipcode")}
    if any(value is None for value in required.values()) or is_malformed_optional(item, "unit"):
        return None
    return _build(Address, **required, unit=get_string(item, "unit"))


def pantry_to_item(pantry: Pantry) -> AttributeMap:
    """Convert a Pantry to its stored attribute map."""
    return {
        "id": _s(pantry.id),
        "name": _s(pantry.name),
        "is_self_managed": _flag(pantry.is_self_managed),
        "opt_status": _s(pantry.opt_status.value),
        "phone": _s(pantry.phone),
        "email": _s(pantry.email),
        "address": {"M": address_to_item(pantry.address)},
        "created_at": _s(format_timestamp(pantry.created_at)),
        "updated_at": _s(format_timestamp(pantry.updated_at)),
    }


def pantry_from_item(item: AttributeMap) -> Pantry | None:
    """Convert a stored attribute map to a Pantry, or None if it is not a valid pantry."""
    required = {key: get_string(item, key) for key in ("id", "name", "phone", "email")}
    opt_status = get_enum(item, "opt_status", OptStatus)
    is_self_managed = get_flag(item, "is_self_managed")
    address_item = get_map(item, "address")
    address = address_from_item(address_item) if address_item is not None else None

    if any(value is None for value in required.values()) or None in (opt_status, is_self_managed, address):
        return None

    return _build(
        Pantry,
        **required,
        opt_status=opt_status,
        is_self_managed=is_self_managed,
        address=address,
        created_at=get_timestamp(item, "created_at"),
        updated_at=get_timestamp(item, "updated_at"),
    )


# PantryAccess


def access_to_item(access: PantryAccess) -> AttributeMap:
    """Convert a PantryAccess grant to its stored attribute map."""
    return {
        "pantry_id": _s(access.pantry_id),
        "user_id": _s(access.user_id),
        "access_level": _s(access.access_level.value),
        "is_contact_agent": _flag(access.is_contact_agent),
        "created_at": _s(format_timestamp(access.created_at)),
        "updated_at": _s(format_timestamp(access.updated_at)),
    }


def access_from_item(item: AttributeMap) -> PantryAccess | None:
    """Convert a stored attribute map to a PantryAccess grant, or None."""
    pantry_id = get_string(item, "pantry_id")
    user_id = get_string(item, "user_id")
    access_level = get_enum(item, "access_level", AccessLevel)
    is_contact_agent = get_flag(item, "is_contact_agent")

    if None in (pantry_id, user_id, access_level, is_contact_agent):
        return None

    return _build(
        PantryAccess,
        pantry_id=pantry_id,
        user_id=user_id,
        access_level=access_level,
        is_contact_agent=is_contact_agent,
        created_at=get_timestamp(item, "created_at"),
        updated_at=get_timestamp(item, "updated_at"),
    )
