"""
Test fixtures for the CRM API test suite.

  - hasher / issuer: Cheap Argon2 parameters and fixed secrets so tests run fast
  - FixedClock / fake_store / manager: In-memory collaborators for exercising
    the session manager without a database
  - db_engine: Fresh in-memory SQLite database for each test
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Client logged in as a registered USER
  - super_admin_client: Client logged in as a SUPER_ADMIN

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) gives every test a fresh database.
  - get_db is overridden with the same commit-on-domain-error semantics as
    production, so failed-login counters persist across requests exactly as
    they would in a deployment.
  - Users are created through the real register endpoint; privileged roles
    are then set directly in the database, the way an operator would.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from crm.clock import Clock
from crm.database import Base, get_db
from crm.dependencies import get_credential_hasher, get_token_issuer
from crm.exceptions import CRMAPIError, DuplicateEmailError
from crm.main import app
from crm.models.user import User, UserRole
from crm.security import CredentialHasher, TokenIssuer
from crm.services.auth_service import SessionManager
from crm.services.lockout import LockoutPolicy
from crm.services.user_store import UserStore


TEST_DATABASE_URL = "sqlite+aiosqlite://"

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"

USER_EMAIL = "testuser@example.com"
USER_PASSWORD = "SecurePass123!"


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------

class FixedClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class InMemoryUserStore(UserStore):
    """Dict-backed UserStore holding transient User instances."""

    def __init__(self):
        self.users: dict[uuid.UUID, User] = {}

    async def find_by_email(self, email: str) -> User | None:
        for user in self.users.values():
            if user.email.lower() == email.lower():
                return user
        return None

    async def find_by_id(self, user_id: uuid.UUID) -> User | None:
        return self.users.get(user_id)

    async def create(self, **fields: Any) -> User:
        if await self.find_by_email(fields["email"]) is not None:
            raise DuplicateEmailError(fields["email"])
        now = datetime.now(timezone.utc)
        user = User(
            id=uuid.uuid4(),
            created_at=now,
            updated_at=now,
            last_login_at=None,
            **fields,
        )
        self.users[user.id] = user
        return user

    async def update(self, user_id: uuid.UUID, **fields: Any) -> User | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        for name, value in fields.items():
            setattr(user, name, value)
        return user

    async def increment_failed_attempts(self, user_id: uuid.UUID) -> int:
        user = self.users[user_id]
        user.failed_attempts += 1
        return user.failed_attempts


@pytest.fixture
def hasher():
    """Argon2 with minimal cost; production parameters are far slower."""
    return CredentialHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def issuer():
    return TokenIssuer(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def fake_store():
    return InMemoryUserStore()


@pytest.fixture
def manager(fake_store, hasher, issuer, clock):
    return SessionManager(
        store=fake_store,
        hasher=hasher,
        issuer=issuer,
        lockout=LockoutPolicy(),
        clock=clock,
    )


# ---------------------------------------------------------------------------
# Database + HTTP client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def client(session_factory, hasher, issuer):
    """Async HTTP test client with the test database and fast hasher injected."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except CRMAPIError:
                await session.commit()
                raise
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_credential_hasher] = lambda: hasher
    app.dependency_overrides[get_token_issuer] = lambda: issuer

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def register_and_login(
    client: AsyncClient,
    email: str,
    password: str,
    first_name: str = "Test",
    last_name: str = "User",
) -> dict:
    """Register through the API, log in, and return the login response body."""
    response = await client.post(
        "/auth/register",
        json={
            "email": email,
            "password": password,
            "firstName": first_name,
            "lastName": last_name,
        },
    )
    assert response.status_code == 201, f"Register failed: {response.text}"
    response = await client.post(
        "/auth/login", json={"email": email, "password": password}
    )
    assert response.status_code == 200, f"Login failed: {response.text}"
    return response.json()


async def set_user_fields(session_factory, user_id: str, **fields) -> None:
    """Update a user row directly, bypassing the API."""
    async with session_factory() as session:
        await session.execute(
            update(User).where(User.id == uuid.UUID(user_id)).values(**fields)
        )
        await session.commit()


@pytest_asyncio.fixture
async def user_login(client):
    """Login response body of a freshly registered USER."""
    return await register_and_login(client, USER_EMAIL, USER_PASSWORD)


@pytest_asyncio.fixture
async def authenticated_client(client, user_login):
    """Client carrying the USER's access token."""
    client.headers["Authorization"] = f"Bearer {user_login['accessToken']}"
    return client


@pytest_asyncio.fixture
async def super_admin_client(client, session_factory):
    """Client logged in as a SUPER_ADMIN provisioned directly in the database."""
    body = await register_and_login(client, "root@example.com", "RootPass123!")
    await set_user_fields(session_factory, body["user"]["id"], role=UserRole.SUPER_ADMIN)

    response = await client.post(
        "/auth/login",
        json={"email": "root@example.com", "password": "RootPass123!"},
    )
    client.headers["Authorization"] = f"Bearer {response.json()['accessToken']}"
    return client
