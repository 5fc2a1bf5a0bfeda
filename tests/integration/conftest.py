"""Integration-test fixtures (PostgreSQL must be migrated: alembic upgrade head).

All integration tests share a single event loop so the module-level
SQLAlchemy async engine pool stays valid across the session. When the
database cannot be reached every test here is skipped.
"""

import uuid
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.main import app
from src.smm_common.database import engine
from src.smm_gateway.auth.jwt_handler import create_access_token


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncIterator[AsyncClient]:
    """Session-scoped async HTTP client against the live database."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM counters LIMIT 1"))
    except (SQLAlchemyError, OSError) as exc:
        pytest.skip(f"PostgreSQL not available: {exc}")
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def admin_headers(client: AsyncClient) -> dict[str, str]:
    """Provision a fresh profile, then promote it to admin directly in SQL."""
    uid = f"it-admin-{uuid.uuid4().hex[:8]}"
    token = create_access_token(uid, name="Integration Admin")
    headers = {"Authorization": f"Bearer {token}"}
    resp = await client.get("/api/v1/wallet/me", headers=headers)
    assert resp.status_code == 200
    async with engine.begin() as conn:
        await conn.execute(text("UPDATE users SET role = 'admin' WHERE id = :id"), {"id": uid})
    return headers
