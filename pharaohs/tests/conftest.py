"""
Shared pytest configuration for backend tests.

Uses an in-memory SQLite database (aiosqlite) so the suite runs without a
database server. The environment is configured before any pharaohs module is
imported, because settings are read once and cached.
"""

import os

os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.setdefault("AWS_S3_BUCKET", "test-bucket")
os.environ.setdefault("AWS_S3_REGION", "us-west-2")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from pharaohs.database.db import Base, get_db_session  # noqa: E402
from pharaohs.database.models import UserRole, UserStatus  # noqa: E402
from pharaohs.services import auth_service, user_service  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "password123"


def _enable_savepoints_and_foreign_keys(engine) -> None:
    """
    pysqlite issues its own BEGIN, which breaks SAVEPOINT handling; take over
    transaction control and turn on foreign keys so ON DELETE CASCADE works.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,  # One shared connection, so every session sees the same database
        connect_args={"check_same_thread": False},
    )
    _enable_savepoints_and_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """Database session for a test; rolled back afterwards."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


async def _make_user(session, name, email, role, status=UserStatus.ACTIVE.value):
    return await user_service.create_user(
        session,
        name=name,
        email=email,
        password_hash=auth_service.hash_password(TEST_PASSWORD),
        role=role,
        status=status,
    )


@pytest_asyncio.fixture
async def player(db_session):
    """An active player account (user dict)."""
    return await _make_user(db_session, "Mo Salah", "player@example.com", UserRole.PLAYER.value)


@pytest_asyncio.fixture
async def player2(db_session):
    """A second active player account."""
    return await _make_user(db_session, "Omar Marmoush", "player2@example.com", UserRole.PLAYER.value)


@pytest_asyncio.fixture
async def scout(db_session):
    """An active scout account."""
    return await _make_user(db_session, "Hassan Shehata", "scout@example.com", UserRole.SCOUT.value)


@pytest_asyncio.fixture
async def admin(db_session):
    """An active admin account."""
    return await _make_user(db_session, "Site Admin", "admin@example.com", UserRole.ADMIN.value)


@pytest_asyncio.fixture
async def make_user(db_session):
    """Factory for extra accounts: ``await make_user(name, email, role, status)``."""

    async def _factory(name, email, role=UserRole.PLAYER.value, status=UserStatus.ACTIVE.value):
        return await _make_user(db_session, name, email, role, status)

    return _factory


@pytest.fixture
def auth_headers():
    """Builds the bearer header for a user dict: ``auth_headers(user)``."""

    def _headers(user: dict) -> dict:
        token = auth_service.create_access_token({"id": user["id"], "role": user["role"]})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(db_session):
    """HTTP client bound to the app, sharing the test's database session."""
    from pharaohs.api.main import app

    async def _override_get_db_session():
        yield db_session

    app.dependency_overrides[get_db_session] = _override_get_db_session
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
