import socket
from collections.abc import AsyncGenerator, Iterator
from typing import Any

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from magiclink.core.config import Settings, settings
from magiclink.core.rate_limiting import limiter
from magiclink.models.base import Base

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Security: test-only secrets. Production reads real values from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow
TEST_ADMIN_API_KEY = "test-admin-key"  # nosec B105  # gitleaks:allow


def make_settings(**overrides: Any) -> Settings:
    """Build Settings for a test without reading .env.

    Auth and admin secrets are preset; keyword arguments override fields.
    """
    values: dict[str, Any] = {
        "auth_secret": SecretStr(TEST_AUTH_SECRET),
        "admin_api_key": SecretStr(TEST_ADMIN_API_KEY),
        "email_backend": "console",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available."""
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Turn the shared limiter off so API tests never hit 429.

    Enforcement is covered by test_rate_limit_enforcement.py with its own
    limiter instance.
    """
    original = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = original


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine with all tables.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.exec_driver_sql("CREATE EXTENSION IF NOT EXISTS pgcrypto")
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory for tests that need several independent sessions."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
