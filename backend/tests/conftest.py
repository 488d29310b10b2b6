"""Shared fixtures for backend tests."""

from __future__ import annotations

import os
import tempfile

# Point the app at a throwaway SQLite file before anything imports settings.
_TEST_DB = os.path.join(tempfile.gettempdir(), f"emporium_test_{os.getpid()}.db")
os.environ["EMPORIUM_DB_URL"] = f"sqlite+aiosqlite:///{_TEST_DB}"
os.environ["AUTH_ENABLED"] = "false"
os.environ["SEED_DEFAULT_ADMIN"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from emporium.auth.deps import create_access_token  # noqa: E402
from emporium.db.engine import async_session, engine  # noqa: E402
from emporium.db.models import Base, Role, User  # noqa: E402

# Fixed ids so scenarios can talk about "user 1" and "user 2".
EMPLOYEE_ID = 1
ADMIN_ID = 2
OTHER_EMPLOYEE_ID = 3
SHOPPER_ID = 4


# ── Database ────────────────────────────────────────────────────


@pytest.fixture
async def schema():
    """Fresh tables for one test; the engine is disposed afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def users(schema) -> dict[str, int]:
    async with async_session() as db:
        db.add_all([
            User(id=EMPLOYEE_ID, username="alice", email="alice@example.com",
                 hashed_password="x", role=Role.EMPLOYEE.value),
            User(id=ADMIN_ID, username="bob", email="bob@example.com",
                 hashed_password="x", role=Role.ADMIN.value),
            User(id=OTHER_EMPLOYEE_ID, username="carol", email="carol@example.com",
                 hashed_password="x", role=Role.EMPLOYEE.value),
            User(id=SHOPPER_ID, username="dave", email="dave@example.com",
                 hashed_password="x", role=Role.SHOPPER.value),
        ])
        await db.commit()
    return {"employee": EMPLOYEE_ID, "admin": ADMIN_ID, "other": OTHER_EMPLOYEE_ID, "shopper": SHOPPER_ID}


@pytest.fixture
async def db(users):
    async with async_session() as session:
        yield session


# ── HTTP ────────────────────────────────────────────────────────


@pytest.fixture
async def client(users):
    """Async test client for the FastAPI app."""
    from emporium.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def bearer(user_id: int, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, [role])}"}


@pytest.fixture
def employee_headers() -> dict[str, str]:
    return bearer(EMPLOYEE_ID, Role.EMPLOYEE.value)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return bearer(ADMIN_ID, Role.ADMIN.value)


@pytest.fixture
def shopper_headers() -> dict[str, str]:
    return bearer(SHOPPER_ID, Role.SHOPPER.value)
