"""
Shared test fixtures and utilities.

API tests run the real application against a temporary SQLite database
and the in-memory cache, with collaborators swapped in through FastAPI
dependency overrides.
"""

import os
from datetime import datetime, timedelta, timezone

# Must be set before the settings are first read
TEST_JWT_SECRET = "test-secret-key-for-testing-only"
os.environ.setdefault("JWT_SECRET", TEST_JWT_SECRET)
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("REDIS_DSN", "")

import jwt  # PyJWT
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from tasktracker.auth.tokens import TokenService, get_token_service
from tasktracker.cache.layer import CacheLayer, get_cache_layer
from tasktracker.database import build_session_factory, create_db_and_tables, get_session_factory
from tasktracker.main import app as fastapi_app


def create_test_token(
    user_id: str = "00000000-0000-0000-0000-000000000001",
    email: str = "test@example.com",
    username: str = "tester",
    expired: bool = False,
    secret: str = TEST_JWT_SECRET,
) -> str:
    """
    Create a JWT the way the token service does.

    Args:
        user_id: Subject claim
        email: Email claim
        username: Username claim
        expired: If True, the token expired an hour ago
        secret: Signing secret

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)
    payload = {
        "sub": user_id,
        "email": email,
        "username": username,
        "iat": int((now - timedelta(hours=2)).timestamp()) if expired else int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


class FakeClock:
    """Controllable monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TEST_JWT_SECRET)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> CacheLayer:
    return CacheLayer(redis_dsn=None, namespace="test:", timer=clock)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}")
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def app(session_factory, cache, token_service):
    fastapi_app.dependency_overrides[get_session_factory] = lambda: session_factory
    fastapi_app.dependency_overrides[get_cache_layer] = lambda: cache
    fastapi_app.dependency_overrides[get_token_service] = lambda: token_service
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def register_and_login(
    client: AsyncClient,
    username: str = "alice",
    email: str = "a@test.com",
    password: str = "Passw0rd1",
) -> tuple[str, dict]:
    """Register a user, log in, and return (token, registered user data)."""
    registered = await client.post(
        "/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert registered.status_code == 201, registered.text
    login = await client.post("/auth/login", json={"email": email, "password": password})
    assert login.status_code == 200, login.text
    return login.json()["token"], registered.json()["data"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def auth_headers(client) -> dict[str, str]:
    token, _ = await register_and_login(client)
    return bearer(token)
