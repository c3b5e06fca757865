"""JSON API over the user, pantry and pantry access services."""

from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from pantryhub.core.errors import ForbiddenError
from pantryhub.core.tokens import TokenClaims
from pantryhub.domain.pantry import Address, OptStatus, Pantry
from pantryhub.domain.pantry_access import AccessLevel, PantryAccess
from pantryhub.domain.user import User, UserRole, normalize_email
from pantryhub.interface.auth import require_claims
from pantryhub.services import pantry_access_service, pantry_service, user_service


router = APIRouter(prefix="/api", tags=["api"])

# Levels allowed to grant access to others on a pantry
GRANTING_LEVELS = {AccessLevel.ADMIN, AccessLevel.MANAGER}


class RegisterRequest(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    user_id: str
    token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    """Public view of a user. Never includes the password hash."""

    id: str
    email: str
    first_name: str
    last_name: str
    pantry_id: str | None
    role: UserRole | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls.model_validate(user.model_dump(exclude={"password_hash"}))


class PantryCreateRequest(BaseModel):
    name: str
    opt_status: str = Field(..., description="T1, T2 or T3")
    address: Address
    is_self_managed: bool = False
    phone: str
    email: str


class AccessGrantRequest(BaseModel):
    user_id: str
    access_level: AccessLevel
    is_contact_agent: bool = False


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest) -> UserOut:
    """Register a new user."""
    user = await user_service.create_user(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return UserOut.from_user(user)


@router.post("/login")
async def login(body: LoginRequest) -> LoginResponse:
    """Exchange email and password for a bearer token."""
    user_id, token = await user_service.verify_login(email=body.email, password=body.password)
    return LoginResponse(user_id=user_id, token=token)


@router.get("/users/me")
async def get_me(claims: TokenClaims = Depends(require_claims)) -> UserOut:
    """Return the authenticated user."""
    return UserOut.from_user(await user_service.get_user(user_id=claims.sub))


@router.get("/users/{user_id}")
async def get_user(user_id: str, _claims: TokenClaims = Depends(require_claims)) -> UserOut:
    return UserOut.from_user(await user_service.get_user(user_id=user_id))


@router.delete("/users/{email}")
async def delete_user(email: str, claims: TokenClaims = Depends(require_claims)) -> dict[str, str | int]:
    """Delete the caller's own account. Other accounts are off limits."""
    if normalize_email(email) != normalize_email(claims.email):
        raise ForbiddenError("Users may only delete their own account")

    removed = await user_service.delete_user(email=email)
    return {"email": email, "removed": removed}


@router.post("/pantries", status_code=status.HTTP_201_CREATED)
async def create_pantry(body: PantryCreateRequest, claims: TokenClaims = Depends(require_claims)) -> Pantry:
    """Create a pantry; the creator becomes its admin and contact agent."""
    pantry = await pantry_service.create_pantry(
        name=body.name,
        opt_status=body.opt_status,
        address=body.address,
        is_self_managed=body.is_self_managed,
        phone=body.phone,
        email=body.email,
    )
    await pantry_access_service.grant_access(
        pantry_id=pantry.id,
        user_id=claims.sub,
        access_level=AccessLevel.ADMIN,
        is_contact_agent=True,
    )
    await user_service.assign_pantry(user_id=claims.sub, pantry_id=pantry.id)
    return pantry


@router.get("/pantries")
async def list_pantries(
    self_managed: bool | None = None,
    opt_status: OptStatus | None = None,
    _claims: TokenClaims = Depends(require_claims),
) -> list[Pantry]:
    """List pantries, optionally only self-managed (or not) ones or one opt status."""
    if self_managed is None:
        pantries = await pantry_service.list_pantries()
    else:
        pantries = await pantry_service.list_pantries_by_self_managed(is_self_managed=self_managed)

    if opt_status is not None:
        pantries = [pantry for pantry in pantries if pantry.opt_status == opt_status]
    return pantries


@router.get("/pantries/{pantry_id}")
async def get_pantry(pantry_id: str, _claims: TokenClaims = Depends(require_claims)) -> Pantry:
    return await pantry_service.get_pantry(pantry_id=pantry_id)


@router.post("/pantries/{pantry_id}/access", status_code=status.HTTP_201_CREATED)
async def grant_access(
    pantry_id: str,
    body: AccessGrantRequest,
    claims: TokenClaims = Depends(require_claims),
) -> PantryAccess:
    """Grant a user access to a pantry. Requires admin or manager access."""
    await pantry_access_service.require_access_level(
        pantry_id=pantry_id, user_id=claims.sub, allowed=GRANTING_LEVELS
    )
    return await pantry_access_service.grant_access(
        pantry_id=pantry_id,
        user_id=body.user_id,
        access_level=body.access_level,
        is_contact_agent=body.is_contact_agent,
    )


@router.get("/pantries/{pantry_id}/access")
async def list_access(
    pantry_id: str,
    access_level: AccessLevel | None = None,
    _claims: TokenClaims = Depends(require_claims),
) -> list[PantryAccess]:
    if access_level is None:
        return await pantry_access_service.list_access_for_pantry(pantry_id=pantry_id)
    return await pantry_access_service.list_access_by_level(pantry_id=pantry_id, access_level=access_level)


@router.get("/pantries/{pantry_id}/contact")
async def get_contact(pantry_id: str, _claims: TokenClaims = Depends(require_claims)) -> UserOut:
    """Return the pantry's designated contact agent."""
    agent = await pantry_access_service.get_contact_agent(pantry_id=pantry_id)
    return UserOut.from_user(await user_service.get_user(user_id=agent.user_id))


@router.get("/users/me/access")
async def my_access(claims: TokenClaims = Depends(require_claims)) -> list[PantryAccess]:
    return await pantry_access_service.list_access_for_user(user_id=claims.sub)
