"""Shared test fixtures."""

import os

# Settings are read at import time; WEBHOOK_SECRET has no default.
os.environ.setdefault("WEBHOOK_SECRET", "test-secret")

from collections.abc import AsyncGenerator
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.me_common.context import get_context
from src.me_common.database import get_db_session

WEBHOOK_SECRET = "test-secret"


def make_context(**overrides: Any) -> SimpleNamespace:
    """Stand-in for AppContext with a fake engine and verifier."""
    conn = AsyncMock()
    connect_cm = MagicMock()
    connect_cm.__aenter__ = AsyncMock(return_value=conn)
    connect_cm.__aexit__ = AsyncMock(return_value=False)
    engine = MagicMock()
    engine.connect.return_value = connect_cm
    settings = SimpleNamespace(
        WEBHOOK_SECRET=WEBHOOK_SECRET,
        CHAIN_ID="SN_SEPOLIA",
        RESERVATION_TTL_SECS=120,
        APP_VERSION="0.1.0",
    )
    ctx = SimpleNamespace(settings=settings, engine=engine, verifier=AsyncMock())
    for key, value in overrides.items():
        setattr(ctx, key, value)
    return ctx


@pytest.fixture
def fake_context() -> SimpleNamespace:
    return make_context()


@pytest.fixture
def fake_db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
async def client(
    fake_context: SimpleNamespace, fake_db: AsyncMock
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app with context and DB session overridden."""

    async def _db() -> AsyncGenerator[AsyncMock, None]:
        yield fake_db

    app.dependency_overrides[get_context] = lambda: fake_context
    app.dependency_overrides[get_db_session] = _db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
