"""Pantry access service: which users can reach which pantries, and how."""

import logging
from datetime import UTC, datetime

from pantryhub.core import db_client
from pantryhub.core.config import constants
from pantryhub.core.errors import ForbiddenError, NotFoundError, StorageError
from pantryhub.core.logging import span
from pantryhub.domain.mappers import TRUE_FLAG, access_from_item, access_to_item
from pantryhub.domain.pantry_access import AccessLevel, PantryAccess
from pantryhub.services import pantry_service, user_service


logger = logging.getLogger(__name__)


def _grants_from_items(items: list[dict]) -> list[PantryAccess]:
    grants = [grant for grant in (access_from_item(item) for item in items) if grant is not None]
    if len(grants) < len(items):
        logger.warning("access_items_skipped", extra={"skipped": len(items) - len(grants)})
    return grants


async def _find_access(pantry_id: str, user_id: str) -> PantryAccess | None:
    item = await db_client.get_item(
        table=constants.PANTRY_ACCESS_TABLE,
        key={"pantry_id": pantry_id, "user_id": user_id},
    )
    if item is None:
        return None

    grant = access_from_item(item)
    if grant is None:
        logger.error("access_item_unmappable", extra={"pantry_id": pantry_id, "user_id": user_id})
        raise StorageError(f"Stored access record for {pantry_id}/{user_id} is corrupt")
    return grant


async def grant_access(
    *,
    pantry_id: str,
    user_id: str,
    access_level: AccessLevel,
    is_contact_agent: bool = False,
) -> PantryAccess:
    """Grant (or change) a user's access level on a pantry.

    A pantry has at most one contact agent: granting the flag to one user
    clears it from whoever held it before.

    Raises:
        NotFoundError: If the pantry or the user does not exist
    """
    with span("pantry_access_service.grant_access"):
        await pantry_service.get_pantry(pantry_id=pantry_id)
        await user_service.get_user(user_id=user_id)

        now = datetime.now(UTC)
        existing = await _find_access(pantry_id, user_id)

        if is_contact_agent:
            for previous in await list_contact_agents(pantry_id=pantry_id):
                if previous.user_id != user_id:
                    demoted = previous.model_copy(update={"is_contact_agent": False, "updated_at": now})
                    await db_client.put_item(table=constants.PANTRY_ACCESS_TABLE, item=access_to_item(demoted))
                    logger.info("contact_agent_cleared", extra={"pantry_id": pantry_id, "user_id": previous.user_id})

        grant = PantryAccess(
            pantry_id=pantry_id,
            user_id=user_id,
            access_level=access_level,
            is_contact_agent=is_contact_agent,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await db_client.put_item(table=constants.PANTRY_ACCESS_TABLE, item=access_to_item(grant))
        logger.info(
            "access_granted",
            extra={"pantry_id": pantry_id, "user_id": user_id, "access_level": access_level.value},
        )

        return grant


async def get_access(*, pantry_id: str, user_id: str) -> PantryAccess:
    """Get the grant a user holds on a pantry.

    Raises:
        NotFoundError: If the user has no access to the pantry
    """
    grant = await _find_access(pantry_id, user_id)
    if grant is None:
        raise NotFoundError(f"User {user_id} has no access to pantry {pantry_id}")
    return grant


async def list_access_for_user(*, user_id: str) -> list[PantryAccess]:
    """List every pantry grant a user holds."""
    items = await db_client.query(
        table=constants.PANTRY_ACCESS_TABLE,
        index=constants.USER_ACCESS_INDEX,
        partition_value=user_id,
    )
    return _grants_from_items(items)


async def list_access_for_pantry(*, pantry_id: str) -> list[PantryAccess]:
    """List every grant on a pantry, ordered by access level."""
    items = await db_client.query(
        table=constants.PANTRY_ACCESS_TABLE,
        index=constants.ACCESS_LEVEL_INDEX,
        partition_value=pantry_id,
    )
    return _grants_from_items(items)


async def list_access_by_level(*, pantry_id: str, access_level: AccessLevel) -> list[PantryAccess]:
    """List the users holding one access level on a pantry."""
    items = await db_client.query(
        table=constants.PANTRY_ACCESS_TABLE,
        index=constants.ACCESS_LEVEL_INDEX,
        partition_value=pantry_id,
        sort_value=access_level.value,
    )
    return _grants_from_items(items)


async def list_contact_agents(*, pantry_id: str) -> list[PantryAccess]:
    """List grants flagged as contact agent on a pantry (normally zero or one)."""
    items = await db_client.query(
        table=constants.PANTRY_ACCESS_TABLE,
        index=constants.CONTACT_AGENT_INDEX,
        partition_value=pantry_id,
        sort_value=TRUE_FLAG,
    )
    return _grants_from_items(items)


async def get_contact_agent(*, pantry_id: str) -> PantryAccess:
    """Get the designated contact agent of a pantry.

    Raises:
        NotFoundError: If the pantry has no contact agent
    """
    agents = await list_contact_agents(pantry_id=pantry_id)
    if not agents:
        raise NotFoundError(f"Pantry {pantry_id} has no contact agent")
    if len(agents) > 1:
        logger.warning("contact_agent_duplicated", extra={"pantry_id": pantry_id, "count": len(agents)})
    return agents[0]


async def revoke_access(*, pantry_id: str, user_id: str) -> None:
    """Remove a user's grant on a pantry.

    Raises:
        NotFoundError: If the user had no access to the pantry
    """
    deleted = await db_client.delete_item(
        table=constants.PANTRY_ACCESS_TABLE,
        key={"pantry_id": pantry_id, "user_id": user_id},
    )
    if not deleted:
        raise NotFoundError(f"User {user_id} has no access to pantry {pantry_id}")
    logger.info("access_revoked", extra={"pantry_id": pantry_id, "user_id": user_id})


async def require_access_level(*, pantry_id: str, user_id: str, allowed: set[AccessLevel]) -> PantryAccess:
    """Ensure a user holds one of the allowed access levels on a pantry.

    Raises:
        ForbiddenError: If the user has no grant, or a grant outside `allowed`
    """
    grant = await _find_access(pantry_id, user_id)
    if grant is None or grant.access_level not in allowed:
        logger.warning("access_denied", extra={"pantry_id": pantry_id, "user_id": user_id})
        raise ForbiddenError(f"Insufficient access to pantry {pantry_id}")
    return grant
