"""Shared test fixtures.

Tests run against an in-memory SQLite database (fresh per test) and an
in-memory Redis double, so no external services are required.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ["PERFO_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["PERFO_BOOTSTRAP_ADMIN_EMAILS"] = '["admin@example.com"]'
os.environ["PERFO_LOCAL_TIMEZONE"] = "UTC"

from perfo.config import get_settings  # noqa: E402
from perfo.database import close_db, get_engine, get_session, init_db  # noqa: E402
from perfo.db import models  # noqa: E402, F401
from perfo.db.base import Base  # noqa: E402
from perfo.redis_client import get_redis  # noqa: E402

ADMIN_EMAIL = "admin@example.com"
PASSWORD = "SecureP@ss1"


def _ensure_test_keys() -> None:
    """Generate an RSA key pair for testing once per process."""
    if os.environ.get("PERFO_JWT_PRIVATE_KEY_PATH"):
        return

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    tmpdir = tempfile.mkdtemp(prefix="perfo_test_keys_")
    private_path = os.path.join(tmpdir, "jwt_private.pem")
    public_path = os.path.join(tmpdir, "jwt_public.pem")
    with open(private_path, "wb") as f:
        f.write(
            key.private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption(),
            )
        )
    with open(public_path, "wb") as f:
        f.write(
            key.public_key().public_bytes(
                serialization.Encoding.PEM,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            )
        )

    os.environ["PERFO_JWT_PRIVATE_KEY_PATH"] = private_path
    os.environ["PERFO_JWT_PUBLIC_KEY_PATH"] = public_path
    get_settings.cache_clear()
    from perfo.auth.jwt import reset_keys

    reset_keys()


class FakeRedis:
    """The handful of Redis commands the app uses, backed by a dict. TTLs are ignored."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = str(value)
        return True

    async def incr(self, key: str) -> int:
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        return key in self.store

    async def delete(self, *keys: str) -> int:
        return sum(1 for k in keys if self.store.pop(k, None) is not None)

    async def ping(self) -> bool:
        return True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[None, None]:
    """Fresh in-memory schema for each test."""
    _ensure_test_keys()
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for service-level tests and assertions."""
    async for session in get_session():
        yield session
        break


@pytest.fixture(autouse=True)
def mock_email_service(monkeypatch):
    """Replace the email service everywhere it is looked up so nothing is sent."""
    mock_service = MagicMock()
    mock_service.send_template = AsyncMock(return_value=True)
    mock_service.send_email = AsyncMock(return_value=True)

    for module in ("perfo.auth.router", "perfo.requests.router", "perfo.notifications.router"):
        monkeypatch.setattr(f"{module}.get_email_service", lambda *a, **kw: mock_service)
    return mock_service


@pytest_asyncio.fixture
async def client(db_engine, fake_redis: FakeRedis) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the ASGI app."""
    from perfo.main import create_app

    app = create_app()
    app.dependency_overrides[get_redis] = lambda: fake_redis
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register(client: AsyncClient, email: str, username: str, password: str = PASSWORD) -> dict:
    """Register via the API and return the token response."""
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "username": username},
    )
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(tokens: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest_asyncio.fixture
async def admin_tokens(client: AsyncClient) -> dict:
    return await register(client, ADMIN_EMAIL, "Mum")


@pytest_asyncio.fixture
async def user_tokens(client: AsyncClient) -> dict:
    return await register(client, "kid@example.com", "Kid")


@pytest.fixture
def admin_headers(admin_tokens: dict) -> dict[str, str]:
    return auth_headers(admin_tokens)


@pytest.fixture
def user_headers(user_tokens: dict) -> dict[str, str]:
    return auth_headers(user_tokens)


@pytest.fixture
def jwt_keys() -> None:
    _ensure_test_keys()
