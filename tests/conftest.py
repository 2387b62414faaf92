# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests (no I/O, fake Redis)
- Integration tests (in-memory SQLite through aiosqlite)

Environment defaults are set before anything from floodaid is imported,
because the rate limiter reads settings at import time.
"""

import os

os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-floodaid-testing-only")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from floodaid.core.config.settings import Settings  # noqa: E402
from floodaid.core.enums import UserRole  # noqa: E402
from floodaid.domains.auth.password import PasswordHasher  # noqa: E402
from floodaid.domains.auth.tokens import TokenService  # noqa: E402
from floodaid.infrastructure.cache.redis_client import RedisClient  # noqa: E402
from floodaid.infrastructure.database.connection import build_sessionmaker, create_schema  # noqa: E402
from floodaid.infrastructure.database.models import AdminUser, City, Province  # noqa: E402

ADMIN_PASSWORD = "Admin-Pass-1"


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (uses a database)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Time and Redis Fakes
# =============================================================================


class FrozenClock:
    """Manually advanced clock, injected wherever services take ``clock``."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 8, 20, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis.

    Implements the commands RedisClient uses. TTLs follow the injected
    clock so tests can expire keys without sleeping.
    """

    def __init__(self, clock: FrozenClock) -> None:
        self._clock = clock
        self._data: dict[str, str] = {}
        self._expiry: dict[str, datetime] = {}

    def _purge(self, name: str) -> None:
        expiry = self._expiry.get(name)
        if expiry is not None and self._clock() >= expiry:
            self._data.pop(name, None)
            self._expiry.pop(name, None)

    async def set(self, name: str, value: str, ex: int | None = None) -> bool:
        self._data[name] = value
        if ex is None:
            self._expiry.pop(name, None)
        else:
            self._expiry[name] = self._clock() + timedelta(seconds=ex)
        return True

    async def get(self, name: str) -> str | None:
        self._purge(name)
        return self._data.get(name)

    async def delete(self, *names: str) -> int:
        removed = 0
        for name in names:
            self._purge(name)
            if name in self._data:
                del self._data[name]
                self._expiry.pop(name, None)
                removed += 1
        return removed

    async def exists(self, *names: str) -> int:
        count = 0
        for name in names:
            self._purge(name)
            count += name in self._data
        return count

    async def ttl(self, name: str) -> int:
        self._purge(name)
        if name not in self._data:
            return -2
        if name not in self._expiry:
            return -1
        return int((self._expiry[name] - self._clock()).total_seconds())

    async def incr(self, name: str) -> int:
        self._purge(name)
        value = int(self._data.get(name, "0")) + 1
        self._data[name] = str(value)
        return value

    async def expire(self, name: str, seconds: int) -> bool:
        self._purge(name)
        if name not in self._data:
            return False
        self._expiry[name] = self._clock() + timedelta(seconds=seconds)
        return True

    async def eval(self, script: str, numkeys: int, *keys_and_args: str) -> int:
        """Run the compare-and-delete script, the only one RedisClient sends."""
        (name,), (expected,) = keys_and_args[:numkeys], keys_and_args[numkeys:]
        if await self.get(name) != expected:
            return 0
        return await self.delete(name)

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None

    def keys(self) -> list[str]:
        for name in list(self._data):
            self._purge(name)
        return list(self._data)


@pytest.fixture
def clock() -> FrozenClock:
    """Provide a clock that only moves when a test advances it."""
    return FrozenClock()


@pytest.fixture
def settings() -> Settings:
    """Provide settings with a cheap bcrypt work factor."""
    return Settings(password_hash_rounds=4)


@pytest.fixture
def fake_redis(clock: FrozenClock) -> FakeRedis:
    """Provide the raw in-memory Redis fake."""
    return FakeRedis(clock)


@pytest.fixture
def redis_client(settings: Settings, fake_redis: FakeRedis) -> RedisClient:
    """Provide a RedisClient wrapping the in-memory fake."""
    return RedisClient(settings, redis=fake_redis)  # type: ignore[arg-type]


@pytest.fixture
def hasher() -> PasswordHasher:
    """Provide a bcrypt hasher with the minimum work factor."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service(settings: Settings, clock: FrozenClock) -> TokenService:
    """Provide a token service on the test clock."""
    return TokenService(settings.jwt, clock)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite engine with the full schema.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Provide the application's sessionmaker bound to the test engine."""
    return build_sessionmaker(db_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test."""
    async with session_factory() as session:
        yield session


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def province(db_session: AsyncSession) -> Province:
    """Create the Sindh province."""
    province = Province(name="Sindh")
    db_session.add(province)
    await db_session.commit()
    return province


@pytest_asyncio.fixture
async def other_province(db_session: AsyncSession) -> Province:
    """Create the Punjab province."""
    province = Province(name="Punjab")
    db_session.add(province)
    await db_session.commit()
    return province


@pytest_asyncio.fixture
async def city(db_session: AsyncSession, province: Province) -> City:
    """Create a city in Sindh."""
    city = City(name="Sukkur", province_id=province.id, latitude=27.7052, longitude=68.8574)
    db_session.add(city)
    await db_session.commit()
    return city


@pytest_asyncio.fixture
async def other_city(db_session: AsyncSession, other_province: Province) -> City:
    """Create a city in Punjab."""
    city = City(name="Multan", province_id=other_province.id)
    db_session.add(city)
    await db_session.commit()
    return city


async def create_admin(
    session: AsyncSession,
    hasher: PasswordHasher,
    email: str,
    role: UserRole = UserRole.SUPER_ADMIN,
    username: str | None = None,
    province_id: int | None = None,
    is_active: bool = True,
    password: str = ADMIN_PASSWORD,
    **overrides: Any,
) -> AdminUser:
    """Insert an admin and commit."""
    admin = AdminUser(
        name=overrides.pop("name", email.split("@")[0].title()),
        email=email,
        username=username or email.split("@")[0],
        password_hash=hasher.hash(password),
        role=role,
        province_id=province_id,
        is_active=is_active,
        **overrides,
    )
    session.add(admin)
    await session.commit()
    return admin


@pytest_asyncio.fixture
async def super_admin(db_session: AsyncSession, hasher: PasswordHasher) -> AdminUser:
    """Create an active super admin."""
    return await create_admin(db_session, hasher, "root@floodaid.org", username="root")


@pytest_asyncio.fixture
async def province_admin(
    db_session: AsyncSession, hasher: PasswordHasher, province: Province
) -> AdminUser:
    """Create an active province admin for Sindh."""
    return await create_admin(
        db_session,
        hasher,
        "sindh@floodaid.org",
        role=UserRole.PROVINCE_ADMIN,
        province_id=province.id,
    )


@pytest.fixture
def admin_factory(db_session: AsyncSession, hasher: PasswordHasher):
    """Provide a coroutine that inserts admins into the test database."""

    async def factory(email: str, **kwargs: Any) -> AdminUser:
        return await create_admin(db_session, hasher, email, **kwargs)

    return factory
