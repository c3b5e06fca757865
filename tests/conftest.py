"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest

from pantryhub.core import db_client
from pantryhub.core.config import settings
from pantryhub.core.tokens import get_token_issuer


TEST_TOKEN_SECRET = "test-signing-secret-not-for-production"


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Point the item store at a fresh SQLite file for one test."""
    path = str(tmp_path / "pantryhub.db")
    monkeypatch.setattr(settings, "sqlite_db_path", path)
    return path


@pytest.fixture
async def item_store(db_path: str) -> AsyncGenerator[str, None]:
    """Provision every table in a temporary store and close it afterwards."""
    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


@pytest.fixture
def token_secret(monkeypatch: pytest.MonkeyPatch) -> Generator[str, None, None]:
    """Configure a signing secret and rebuild the cached token issuer around the test."""
    monkeypatch.setattr(settings, "token_secret", TEST_TOKEN_SECRET)
    get_token_issuer.cache_clear()
    yield TEST_TOKEN_SECRET
    get_token_issuer.cache_clear()


@pytest.fixture
def sample_address() -> dict[str, str]:
    return {
        "street": "12 Harvest Lane",
        "unit": "Suite 4",
        "city": "Springfield",
        "state": "IL",
        "zipcode": "62704",
    }
