"""
Test fixtures for the Card Vault test suite.

  - test_key / cipher: a fixed AES-256 key and a cipher bound to it
  - db_engine / db_session: fresh in-memory SQLite database for each test
  - client: async HTTP test client (unauthenticated)
  - authenticated_client: client with a signed-up user and JWT
  - second_authenticated_client: a second user for cross-user tests

Environment variables are set before anything from cardvault is imported,
because cardvault.config builds its Settings singleton at import time.
"""

import os

TEST_ENCRYPTION_KEY = "0123456789abcdef" * 4

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENCRYPTION_KEY", TEST_ENCRYPTION_KEY)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402

from cardvault.crypto import AuthenticatedCipher  # noqa: E402
from cardvault.database import Base, get_db  # noqa: E402
from cardvault.exceptions import CardVaultError  # noqa: E402
from cardvault.main import app  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite://"

VISA_CARD = {
    "card_number": "4242 4242 4242 4242",
    "cvv": "123",
    "expiry": "12/30",
    "cardholder_name": "John Doe",
}
MASTERCARD_CARD = {
    "card_number": "5500-0000-0000-0004",
    "cvv": "456",
    "expiry": "06/31",
    "cardholder_name": "John Doe",
}


@pytest.fixture
def test_key() -> bytes:
    return bytes.fromhex(TEST_ENCRYPTION_KEY)


@pytest.fixture
def cipher(test_key) -> AuthenticatedCipher:
    return AuthenticatedCipher(test_key)


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


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_engine):
    """
    Async HTTP test client with the test database injected.

    The get_db override keeps the production commit rules: domain errors
    still commit, anything else rolls back.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except CardVaultError:
                await session.commit()
                raise
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def _signup(client, email: str, password: str) -> str:
    response = await client.post(
        "/auth/signup",
        json={
            "email": email,
            "password": password,
            "first_name": "Test",
            "last_name": "User",
        },
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    return response.json()["token"]


@pytest_asyncio.fixture
async def authenticated_client(client):
    """Test client with a pre-registered user and JWT token."""
    token = await _signup(client, "testuser@example.com", "SecurePass123!")
    client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest_asyncio.fixture
async def second_user_token(client):
    """JWT of a second user, for cross-user authorization tests."""
    return await _signup(client, "seconduser@example.com", "SecurePass456!")
