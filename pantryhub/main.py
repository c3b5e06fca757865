"""pantryhub - users, food pantries and pantry access behind one JSON API."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from pantryhub.core import db_client
from pantryhub.core.errors import ConfigurationError, PantryHubError, StorageError
from pantryhub.core.logging import configure_logfire, instrument_fastapi
from pantryhub.core.tokens import get_token_issuer
from pantryhub.interface.api_router import router as api_router
from pantryhub.interface.auth import pantryhub_error_handler


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Validate required configuration before serving any request.

    Builds the token issuer once, so the signing secret is read at startup
    and never again per request.

    Raises:
        ConfigurationError: If the signing secret is missing
    """
    logger.info("startup_validation_begin")
    get_token_issuer()
    logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so validation logs are captured
    configure_logfire()

    try:
        validate_startup_configuration()
        await db_client.init_db()
    except (ConfigurationError, StorageError) as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\nStartup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    logger.info("Database initialized")
    yield
    # Shutdown
    await db_client.close_connection()


app = FastAPI(
    title="pantryhub",
    description="Users, food pantries and pantry access",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

app.add_exception_handler(PantryHubError, pantryhub_error_handler)  # type: ignore[arg-type]

# Register routers
app.include_router(api_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)
