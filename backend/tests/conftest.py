"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.

Settings are read at import time, so the required environment is set
before anything from ``lexshield`` is imported.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-key-for-unit-tests-only")
# Fernet key: urlsafe base64 of 32 bytes
os.environ.setdefault("ENCRYPTION_KEY", "YWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWE=")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
# The ASGI test transport connects from 127.0.0.1
os.environ.setdefault("TRUSTED_PROXIES", '["127.0.0.1"]')

import time
from datetime import datetime, timedelta
from typing import AsyncGenerator, Dict, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lexshield.core import auth as auth_module
from lexshield.core.auth import create_access_token
from lexshield.db.session import get_db
from lexshield.main import create_app
from lexshield.models.base import Base


# WHY: SQLite in memory keeps DAO and API tests free of a database server
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeRedis:
    """
    In-memory stand-in for ``redis.asyncio.Redis``.

    Implements the commands the stores, the blacklist and the security
    monitor use. TTLs are recorded, not enforced.
    """

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value, ex: Optional[int] = None) -> bool:
        self.data[key] = str(value)
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def setex(self, key: str, ttl: int, value) -> bool:
        return await self.set(key, value, ex=ttl)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self.data)

    async def incr(self, key: str) -> int:
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return key in self.data


class InMemoryKeyValueStore:
    """KeyValueStore over a dict, for engine-level tests."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)
        self.ttls.pop(key, None)


# ============================================================================
# Database
# ============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope gives each test a fresh database.
    """
    engine = create_async_engine(TEST_ASYNC_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Database session rolled back after the test."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# ============================================================================
# Redis
# ============================================================================


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    """
    Replace the shared Redis client with an in-memory fake.

    WHY: The blacklist, the session activity store, the auth-event store
    and the security monitor all go through ``get_redis()``.
    """
    redis = FakeRedis()
    monkeypatch.setattr(auth_module, "_redis_client", redis)
    return redis


# ============================================================================
# Application
# ============================================================================


@pytest.fixture
def app(fake_redis):
    return create_app()


@pytest_asyncio.fixture
async def client(app, db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client bound to the app with the test database.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Data
# ============================================================================


@pytest_asyncio.fixture
async def test_firm(db_session: AsyncSession):
    from lexshield.models.firm import Firm

    firm = Firm(name="Test Law Firm", is_active=True, ip_whitelist_enabled=False, ip_whitelist=[])
    db_session.add(firm)
    await db_session.flush()
    await db_session.refresh(firm)
    return firm


@pytest_asyncio.fixture
async def other_firm(db_session: AsyncSession):
    from lexshield.models.firm import Firm

    firm = Firm(name="Other Firm", is_active=True, ip_whitelist_enabled=False, ip_whitelist=[])
    db_session.add(firm)
    await db_session.flush()
    await db_session.refresh(firm)
    return firm


async def _make_user(db_session: AsyncSession, **overrides):
    from lexshield.models.user import User, UserRole

    values = {
        "name": "Test User",
        "email": f"user{time.monotonic_ns()}@example.com",
        "role": UserRole.LAWYER,
        "firm_role": "lawyer",
        "permissions": {},
        "is_active": True,
        "is_email_verified": True,
    }
    values.update(overrides)
    user = User(**values)
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def owner_user(db_session: AsyncSession, test_firm):
    return await _make_user(db_session, name="Owner", firm_id=test_firm.id, firm_role="owner")


@pytest_asyncio.fixture
async def lawyer_user(db_session: AsyncSession, test_firm):
    return await _make_user(db_session, name="Lawyer", firm_id=test_firm.id, firm_role="lawyer")


@pytest_asyncio.fixture
async def other_firm_owner(db_session: AsyncSession, other_firm):
    return await _make_user(db_session, name="Other Owner", firm_id=other_firm.id, firm_role="owner")


@pytest_asyncio.fixture
async def unverified_user(db_session: AsyncSession, test_firm):
    return await _make_user(
        db_session,
        name="Unverified",
        firm_id=test_firm.id,
        firm_role="owner",
        is_email_verified=False,
    )


@pytest_asyncio.fixture
async def solo_user(db_session: AsyncSession):
    return await _make_user(db_session, name="Solo", firm_id=None, firm_role=None)


@pytest_asyncio.fixture
async def test_case(db_session: AsyncSession, test_firm):
    from lexshield.models.case import Case
    from lexshield.security.field_protection import FieldCipher

    case = Case(
        title="Commercial dispute",
        case_number="C-2026-001",
        firm_id=test_firm.id,
        client_national_id=FieldCipher().encrypt("1098765432"),
    )
    db_session.add(case)
    await db_session.flush()
    await db_session.refresh(case)
    return case


@pytest.fixture
def make_token():
    """
    Build access tokens.

    Example:
        token = make_token(user.id, issued_minutes_ago=10)
    """

    def _make(user_id: int, issued_minutes_ago: float = 0, **claims) -> str:
        issued_at = datetime.utcnow() - timedelta(minutes=issued_minutes_ago)
        return create_access_token(
            {"user_id": user_id, **claims},
            expires_delta=timedelta(days=30),
            issued_at=issued_at,
        )

    return _make


@pytest.fixture
def auth_headers(make_token):
    """
    Authorization header for a user.

    Example:
        response = await client.get(url, headers=auth_headers(user.id))
    """

    def _headers(user_id: int, **token_options) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id, **token_options)}"}

    return _headers


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()
