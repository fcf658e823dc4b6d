"""Test fixtures: a fresh in-memory database per test.

Learn: Each test gets its own SQLite database (aiosqlite + StaticPool so
every connection sees the same memory DB), created from the ORM models.
The app's get_db dependency is overridden to hand out that session, and
the action guard is rebuilt so rate-limit buckets never leak between
tests. Requests carry a browser User-Agent; the edge guard blocks
python-httpx like any other HTTP library.
"""

import base64
import os

os.environ.setdefault("WELTH_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault(
    "WELTH_IDENTITY_WEBHOOK_SECRET",
    "whsec_" + base64.b64encode(b"test-webhook-secret").decode(),
)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from welth.auth.session import create_session_token
from welth.config import settings
from welth.db.engine import get_db
from welth.db.models import Base, User
from welth.main import app
from welth.security.guard import build_action_guard

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

BROWSER_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_4) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15"
)

TEST_SUBJECT = "user_2fTestSubject01"


@pytest_asyncio.fixture()
async def db_session():
    engine = create_async_engine(TEST_DB_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def client(db_session):
    """HTTP client against the app with get_db overridden."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.action_guard = build_action_guard(settings)

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"User-Agent": BROWSER_UA},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def user(db_session) -> User:
    """A provisioned user matching TEST_SUBJECT."""
    u = User(clerk_user_id=TEST_SUBJECT, email="ada@example.com", name="Ada Lovelace")
    db_session.add(u)
    await db_session.commit()
    return u


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_session_token(TEST_SUBJECT)}"}
