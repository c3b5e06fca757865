"""Pantry service for registering and looking up food pantries."""

import logging
import uuid
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError

from pantryhub.core import db_client
from pantryhub.core.config import constants
from pantryhub.core.errors import NotFoundError, StorageError, ValidationError, describe_validation_error
from pantryhub.core.logging import span
from pantryhub.domain.mappers import FALSE_FLAG, TRUE_FLAG, get_string, pantry_from_item, pantry_to_item
from pantryhub.domain.pantry import Address, OptStatus, Pantry


logger = logging.getLogger(__name__)


def parse_opt_status(code: OptStatus | str) -> OptStatus:
    """Parse an opt status code such as "T2".

    Raises:
        ValidationError: If the code is not one of T1, T2, T3
    """
    try:
        return OptStatus(code)
    except ValueError as e:
        valid = ", ".join(status.value for status in OptStatus)
        raise ValidationError(f"Unrecognized opt status '{code}' (expected one of {valid})") from e


def _pantries_from_items(items: list[dict]) -> list[Pantry]:
    pantries = [pantry for pantry in (pantry_from_item(item) for item in items) if pantry is not None]
    if len(pantries) < len(items):
        logger.warning("pantry_items_skipped", extra={"skipped": len(items) - len(pantries)})
    return pantries


async def create_pantry(
    *,
    name: str,
    opt_status: OptStatus | str,
    address: Address | dict,
    is_self_managed: bool,
    phone: str,
    email: str,
) -> Pantry:
    """Register a new pantry.

    Args:
        name: Name of the food pantry
        opt_status: Enrollment tier, as an OptStatus or its code
        address: Postal address, as an Address or a plain dict
        is_self_managed: Whether the pantry manages its own listing
        phone: Contact phone number
        email: Contact email

    Returns:
        The created pantry

    Raises:
        ValidationError: If the opt status or address is malformed
        StorageError: If the store cannot be reached
    """
    with span("pantry_service.create_pantry"):
        status = parse_opt_status(opt_status)

        now = datetime.now(UTC)
        try:
            pantry = Pantry(
                id=str(uuid.uuid4()),
                name=name,
                is_self_managed=is_self_managed,
                opt_status=status,
                address=address if isinstance(address, Address) else Address.model_validate(address),
                phone=phone,
                email=email,
                created_at=now,
                updated_at=now,
            )
        except PydanticValidationError as e:
            raise ValidationError(describe_validation_error(e)) from e

        await db_client.put_item(table=constants.PANTRIES_TABLE, item=pantry_to_item(pantry))
        logger.info("pantry_created", extra={"pantry_id": pantry.id, "opt_status": status.value})

        return pantry


async def get_pantry(*, pantry_id: str) -> Pantry:
    """Get pantry by ID.

    Raises:
        NotFoundError: If no pantry has this id
        StorageError: If the stored record cannot be mapped or the store fails
    """
    item = await db_client.get_item(table=constants.PANTRIES_TABLE, key={"id": pantry_id})
    if item is None:
        raise NotFoundError(f"No pantry found with id {pantry_id}")

    pantry = pantry_from_item(item)
    if pantry is None:
        logger.error("pantry_item_unmappable", extra={"pantry_id": pantry_id})
        raise StorageError(f"Stored pantry record {pantry_id} is corrupt")
    return pantry


async def list_pantries() -> list[Pantry]:
    """List all pantries, skipping records that cannot be mapped."""
    items = await db_client.scan(table=constants.PANTRIES_TABLE)
    return _pantries_from_items(items)


async def list_pantries_by_self_managed(*, is_self_managed: bool) -> list[Pantry]:
    """List pantries that are (or are not) self-managed."""
    items = await db_client.query(
        table=constants.PANTRIES_TABLE,
        index=constants.SELF_MANAGED_INDEX,
        partition_value=TRUE_FLAG if is_self_managed else FALSE_FLAG,
    )
    return _pantries_from_items(items)


async def delete_pantry(*, pantry_id: str) -> None:
    """Delete a pantry and every access grant on it.

    The grants are removed one by one after the pantry itself; a failure
    part-way leaves the remaining grants in place.

    Raises:
        NotFoundError: If no pantry has this id
    """
    with span("pantry_service.delete_pantry"):
        deleted = await db_client.delete_item(table=constants.PANTRIES_TABLE, key={"id": pantry_id})
        if not deleted:
            raise NotFoundError(f"No pantry found with id {pantry_id}")

        grants = await db_client.query(
            table=constants.PANTRY_ACCESS_TABLE,
            index=constants.ACCESS_LEVEL_INDEX,
            partition_value=pantry_id,
        )
        for grant in grants:
            user_id = get_string(grant, "user_id")
            if user_id:
                await db_client.delete_item(
                    table=constants.PANTRY_ACCESS_TABLE,
                    key={"pantry_id": pantry_id, "user_id": user_id},
                )

        logger.info("pantry_deleted", extra={"pantry_id": pantry_id, "grants_removed": len(grants)})
