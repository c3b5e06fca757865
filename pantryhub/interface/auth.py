"""Bearer token authentication for API routes."""

import logging

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pantryhub.core.config import constants
from pantryhub.core.errors import PantryHubError, UnauthorizedError, http_status_for, to_error_response
from pantryhub.core.tokens import TokenClaims
from pantryhub.services import user_service


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def require_claims(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenClaims:
    """Authenticate the request from its `Authorization: Bearer <token>` header.

    Raises:
        UnauthorizedError: If the header is missing or the token is invalid or expired
    """
    # HTTPBearer yields None for a missing header and for any scheme other than Bearer
    if credentials is None:
        logger.warning("auth_missing_header", extra={"path": request.url.path})
        raise UnauthorizedError("Missing or malformed authorization header")

    return user_service.authenticate(token=credentials.credentials)


async def pantryhub_error_handler(request: Request, exc: PantryHubError) -> JSONResponse:
    """Render a PantryHubError as a JSON error body with a matching status code."""
    response = to_error_response(exc)
    logger.info("request_failed", extra={"path": request.url.path, "code": response.code})

    headers = {"WWW-Authenticate": constants.BEARER_SCHEME} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(
        status_code=http_status_for(exc.kind),
        content=response.model_dump(mode="json"),
        headers=headers,
    )
