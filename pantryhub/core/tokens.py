"""Bearer token issuance and verification.

Tokens are signed, URL-safe payloads carrying the subject id, email and an
absolute expiry. They are stateless: there is no server-side revocation, so
logging out means the client discards its token.
"""

import logging
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from itsdangerous import BadData, SignatureExpired, URLSafeTimedSerializer
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from pantryhub.core.config import settings
from pantryhub.core.errors import UnauthorizedError


logger = logging.getLogger(__name__)

TOKEN_SALT = "pantryhub-bearer"


class TokenClaims(BaseModel):
    """Claims embedded in a bearer token."""

    sub: str = Field(..., description="Subject (user) id")
    email: str = Field(..., description="Subject email at issue time")
    exp: int = Field(..., description="Expiry as seconds since the epoch (UTC)")


class TokenIssuer:
    """Issues and verifies bearer tokens signed with one shared secret."""

    def __init__(self, secret: str, *, ttl: timedelta = timedelta(hours=24)) -> None:
        self._serializer = URLSafeTimedSerializer(secret, salt=TOKEN_SALT)
        self._ttl = ttl

    def __repr__(self) -> str:
        return f"TokenIssuer(ttl={self._ttl!r})"

    def issue(self, subject_id: str, email: str, *, now: datetime | None = None) -> str:
        """Issue a token for a subject that expires one TTL after `now`."""
        issued_at = now or datetime.now(UTC)
        claims = TokenClaims(sub=subject_id, email=email, exp=int((issued_at + self._ttl).timestamp()))
        return self._serializer.dumps(claims.model_dump())

    def verify(self, token: str, *, now: datetime | None = None) -> TokenClaims:
        """Verify signature and expiry, returning the embedded claims.

        Raises:
            UnauthorizedError: If the token is missing, tampered, malformed or expired
        """
        if not token:
            raise UnauthorizedError("Missing bearer token")

        try:
            payload = self._serializer.loads(token, max_age=int(self._ttl.total_seconds()))
            claims = TokenClaims.model_validate(payload)
        except SignatureExpired as e:
            logger.info("token_expired")
            raise UnauthorizedError("Token has expired") from e
        except (BadData, PydanticValidationError) as e:
            logger.warning("token_invalid", extra={"error_type": type(e).__name__})
            raise UnauthorizedError("Invalid bearer token") from e

        current = now or datetime.now(UTC)
        if claims.exp <= int(current.timestamp()):
            logger.info("token_expired", extra={"sub": claims.sub})
            raise UnauthorizedError("Token has expired")

        return claims


@lru_cache
def get_token_issuer() -> TokenIssuer:
    """Build the process-wide issuer from settings on first use.

    Raises:
        ConfigurationError: If TOKEN_SECRET is not configured
    """
    secret = settings.require_credential("token_secret", "Token signing")
    return TokenIssuer(secret, ttl=timedelta(hours=settings.token_ttl_hours))
