"""User service for registration, login and account management."""

import logging
import uuid
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError

from pantryhub.core import db_client
from pantryhub.core.config import constants
from pantryhub.core.errors import (
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
    describe_validation_error,
)
from pantryhub.core.logging import span
from pantryhub.core.passwords import hash_password, verify_password
from pantryhub.core.tokens import TokenClaims, get_token_issuer
from pantryhub.domain.mappers import get_string, user_from_item, user_to_item
from pantryhub.domain.user import User, UserRole, normalize_email


logger = logging.getLogger(__name__)

INVALID_LOGIN_MESSAGE = "Invalid email or password"


def _validate_password(password: str) -> None:
    if len(password) < constants.PASSWORD_MIN_LENGTH:
        msg = f"Password must be at least {constants.PASSWORD_MIN_LENGTH} characters"
        raise ValidationError(msg)


async def _save(user: User) -> User:
    await db_client.put_item(table=constants.USERS_TABLE, item=user_to_item(user))
    return user


def _users_from_items(items: list[dict]) -> list[User]:
    users = [user for user in (user_from_item(item) for item in items) if user is not None]
    if len(users) < len(items):
        logger.warning("user_items_skipped", extra={"skipped": len(items) - len(users)})
    return users


async def _users_with_email(email: str) -> list[User]:
    """Return every mappable user holding an email, oldest first.

    Raises:
        StorageError: If matching items exist but none of them can be mapped
    """
    items = await db_client.query(
        table=constants.USERS_TABLE, index=constants.EMAIL_INDEX, partition_value=normalize_email(email)
    )
    users = _users_from_items(items)

    if items and not users:
        logger.error("user_item_unmappable", extra={"index": constants.EMAIL_INDEX, "count": len(items)})
        raise StorageError(f"Stored user records for {email} are corrupt")

    return sorted(users, key=lambda user: user.created_at)


async def create_user(
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: UserRole | None = None,
) -> User:
    """Register a new user.

    The email pre-check is best effort: two concurrent registrations with
    the same email can both succeed.

    Args:
        email: Login email
        password: Plaintext password, hashed before storage
        first_name: Given name
        last_name: Family name
        role: Optional system-wide role

    Returns:
        The created user

    Raises:
        ValidationError: If a field is malformed or the email is already registered
        StorageError: If the store cannot be reached
    """
    with span("user_service.create_user"):
        _validate_password(password)

        # Guard: Check if email already registered, before paying for the hash
        if await _users_with_email(email):
            msg = f"User with email {normalize_email(email)} already exists"
            logger.warning("user_email_taken", extra={"email": normalize_email(email)})
            raise ValidationError(msg)

        now = datetime.now(UTC)
        try:
            user = User(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=hash_password(password),
                first_name=first_name,
                last_name=last_name,
                role=role,
                created_at=now,
                updated_at=now,
            )
        except PydanticValidationError as e:
            raise ValidationError(describe_validation_error(e)) from e

        await _save(user)
        logger.info("user_created", extra={"user_id": user.id})

        return user


async def verify_login(*, email: str, password: str) -> tuple[str, str]:
    """Check credentials and issue a bearer token.

    Returns:
        Tuple of (user id, token)

    Raises:
        UnauthorizedError: If the email is unknown or the password is wrong
    """
    with span("user_service.verify_login"):
        users = await _users_with_email(email)
        if not users:
            logger.info("login_failed", extra={"reason": "unknown_email"})
            raise UnauthorizedError(INVALID_LOGIN_MESSAGE)

        user = users[0]
        if not verify_password(password, user.password_hash):
            logger.info("login_failed", extra={"reason": "wrong_password", "user_id": user.id})
            raise UnauthorizedError(INVALID_LOGIN_MESSAGE)

        token = get_token_issuer().issue(user.id, user.email)
        logger.info("login_succeeded", extra={"user_id": user.id})

        return user.id, token


def authenticate(*, token: str) -> TokenClaims:
    """Verify a bearer token and return its claims.

    Raises:
        UnauthorizedError: If the token is missing, invalid or expired
    """
    return get_token_issuer().verify(token)


async def get_user(*, user_id: str) -> User:
    """Get user by ID.

    Raises:
        NotFoundError: If no user has this id
        StorageError: If the stored record cannot be mapped or the store fails
    """
    item = await db_client.get_item(table=constants.USERS_TABLE, key={"id": user_id})
    if item is None:
        raise NotFoundError(f"No user found with id {user_id}")

    user = user_from_item(item)
    if user is None:
        logger.error("user_item_unmappable", extra={"user_id": user_id})
        raise StorageError(f"Stored user record {user_id} is corrupt")
    return user


async def get_user_by_email(*, email: str) -> User:
    """Get user by email.

    If the uniqueness of emails has been broken, the oldest user wins.

    Raises:
        NotFoundError: If no user has this email
    """
    users = await _users_with_email(email)
    if not users:
        raise NotFoundError(f"No user found with email {email}")
    if len(users) > 1:
        logger.warning("user_email_duplicated", extra={"email": email, "count": len(users)})
    return users[0]


async def list_users() -> list[User]:
    """List all users, skipping records that cannot be mapped."""
    items = await db_client.scan(table=constants.USERS_TABLE)
    return _users_from_items(items)


async def list_users_by_role(*, role: UserRole) -> list[User]:
    """List users holding a system-wide role."""
    items = await db_client.query(table=constants.USERS_TABLE, index=constants.ROLE_INDEX, partition_value=role.value)
    return _users_from_items(items)


async def update_password(*, user_id: str, new_password: str) -> User:
    """Replace a user's password with a freshly salted hash."""
    with span("user_service.update_password"):
        _validate_password(new_password)

        user = await get_user(user_id=user_id)
        updated = user.model_copy(
            update={"password_hash": hash_password(new_password), "updated_at": datetime.now(UTC)}
        )
        await _save(updated)
        logger.info("user_password_updated", extra={"user_id": user_id})

        return updated


async def assign_pantry(*, user_id: str, pantry_id: str) -> User:
    """Associate a user with a pantry."""
    user = await get_user(user_id=user_id)
    updated = user.model_copy(update={"pantry_id": pantry_id, "updated_at": datetime.now(UTC)})
    await _save(updated)
    logger.info("user_pantry_assigned", extra={"user_id": user_id, "pantry_id": pantry_id})
    return updated


async def delete_user(*, email: str) -> int:
    """Delete every user record holding an email.

    Returns:
        Number of records removed

    Raises:
        NotFoundError: If no user has this email
    """
    with span("user_service.delete_user"):
        email = normalize_email(email)
        items = await db_client.query(
            table=constants.USERS_TABLE, index=constants.EMAIL_INDEX, partition_value=email
        )
        if not items:
            raise NotFoundError(f"No user found with email {email}")

        removed = 0
        for item in items:
            user_id = get_string(item, "id")
            if user_id and await db_client.delete_item(table=constants.USERS_TABLE, key={"id": user_id}):
                removed += 1

        logger.info("user_deleted", extra={"email": email, "removed": removed})
        return removed
