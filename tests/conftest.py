import os
import tempfile
from collections.abc import AsyncGenerator

# Test configuration must be in place before any src import builds the engine
_DB_DIR = tempfile.mkdtemp(prefix="lc-ledger-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/ledger.db"
os.environ.setdefault("CLERK_SECRET_KEY", "sk_test_placeholder")
os.environ.setdefault("CLERK_PUBLISHABLE_KEY", "pk_test_placeholder")
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import Request  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import src.models  # noqa: E402, F401
from src.core.exceptions import AuthenticationError  # noqa: E402
from src.db.engine import async_session_factory, engine  # noqa: E402
from src.models.user import User, UserRole  # noqa: E402
from tests.factories import TEST_USER_HEADER, make_user  # noqa: E402


class RecordingDispatcher:
    """Stands in for the Celery hand-off; remembers dispatched ids."""

    def __init__(self) -> None:
        self.sent: list[int] = []
        self.fail = False

    def __call__(self, notification_id: int) -> None:
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.sent.append(notification_id)


@pytest.fixture(autouse=True)
def dispatched(monkeypatch) -> RecordingDispatcher:
    """Keep every test away from the real broker."""
    recorder = RecordingDispatcher()
    monkeypatch.setattr("src.services.notification_service.enqueue_delivery", recorder)
    return recorder


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    async with async_session_factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def alice(db) -> User:
    return await make_user(db, "Alice")


@pytest_asyncio.fixture
async def bob(db) -> User:
    return await make_user(db, "Bob")


@pytest_asyncio.fixture
async def admin(db) -> User:
    return await make_user(db, "Admin", role=UserRole.ADMIN)


async def header_user(request: Request) -> User:
    """Resolve the caller from a test header instead of a Clerk token."""
    user_id = request.headers.get(TEST_USER_HEADER)
    if not user_id:
        raise AuthenticationError("Missing bearer token")
    async with async_session_factory() as session:
        user = await session.get(User, int(user_id))
    if user is None:
        raise AuthenticationError("Unknown test user")
    return user


@pytest_asyncio.fixture
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    from src.api.auth import get_current_user
    from src.main import app

    app.dependency_overrides[get_current_user] = header_user
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
