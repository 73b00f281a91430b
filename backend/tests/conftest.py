"""
NoteFlow Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite) with
       the full schema and foreign keys enforced. Service tests use
       `db_session` directly; API tests go through `test_client`, whose
       requests each get their own committed session on the same database.

Fixture Hierarchy (all function-scoped):
    engine
    └── session_factory
        ├── db_session:   AsyncSession for service-level tests
        └── test_client:  HTTPX AsyncClient over a fresh app instance
    mock_db_session:      AsyncMock session for tests that need no database
    make_user / make_note: factories inserting rows through db_session
    api:                  helpers that sign up accounts and create notes via HTTP
"""

import os

# Override settings for testing BEFORE any noteflow imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["APP_ENV"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["AUTH_RATE_LIMIT_REQUESTS"] = "100000"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"

from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from noteflow.database import Base, enable_sqlite_foreign_keys, get_db_session
from noteflow.models.comment import Comment  # noqa: F401
from noteflow.models.engagement import Bookmark, Like  # noqa: F401
from noteflow.models.note import Note
from noteflow.models.payment import Payment  # noqa: F401
from noteflow.models.user import ROLE_CREATOR, ROLE_VIEWER, User
from noteflow.security import hash_password

PASSWORD = "secret123"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """
    In-memory SQLite shared by every session of one test.

    StaticPool keeps a single connection alive; without it each new
    connection would see an empty database.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behavior.

    Usage:
        mock_db_session.execute.return_value.first.return_value = None
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Row Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(db_session):
    async def _make_user(role: str = ROLE_VIEWER, name: Optional[str] = None) -> User:
        suffix = uuid4().hex[:8]
        user = User(
            name=name or f"User {suffix}",
            email=f"{suffix}@example.com",
            password_hash=hash_password(PASSWORD),
            role=role,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user


@pytest.fixture
def make_note(db_session):
    async def _make_note(creator: User, **overrides: Any) -> Note:
        fields: Dict[str, Any] = {
            "creator_id": creator.id,
            "title": "Linear Algebra Notes",
            "subject": "Mathematics",
            "topics": ["Vectors", "Matrices"],
            "description": "Lecture notes for the first half of the term",
            "content_type": "pdf",
            "content_urls": ["https://cdn.example.com/a.pdf"],
            "price_cents": 0,
            "is_published": True,
        }
        fields.update(overrides)
        note = Note(**fields)
        db_session.add(note)
        await db_session.flush()
        return note

    return _make_note


@pytest_asyncio.fixture
async def creator(make_user):
    return await make_user(role=ROLE_CREATOR, name="Ada Creator")


@pytest_asyncio.fixture
async def viewer(make_user):
    return await make_user(role=ROLE_VIEWER, name="Vic Viewer")


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to a fresh app through ASGITransport.

    get_db_session is overridden so every request commits into the test
    database instead of the module-level engine.
    """
    from noteflow.main import create_app

    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class ApiHelper:
    """Builds accounts and notes through the public API."""

    def __init__(self, client: AsyncClient):
        self.client = client

    @staticmethod
    def auth(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def signup(self, role: str = ROLE_VIEWER, name: str = "Test User") -> Dict[str, Any]:
        response = await self.client.post(
            "/api/auth/signup",
            json={
                "name": name,
                "email": f"{uuid4().hex[:8]}@example.com",
                "password": PASSWORD,
                "confirmPassword": PASSWORD,
                "userType": role,
            },
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    async def create_note(self, token: str, **overrides: Any) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "title": "Organic Chemistry",
            "subject": "Chemistry",
            "topics": ["Alkanes", "Alkenes"],
            "description": "Reaction mechanisms with worked examples",
            "content_type": "pdf",
            "content_urls": ["https://cdn.example.com/1.pdf"],
            "price": "0",
        }
        body.update(overrides)
        response = await self.client.post("/api/notes", json=body, headers=self.auth(token))
        assert response.status_code == 201, response.text
        return response.json()["data"]["note"]


@pytest.fixture
def api(test_client):
    return ApiHelper(test_client)
