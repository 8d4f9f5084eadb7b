"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import hashlib
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from leaveflow.common.constants import HalfDayPeriod, LeaveStatus, LeaveType, UserRole
from leaveflow.config import settings
from leaveflow.database import Base, get_db
from leaveflow.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import leaveflow.auth.models  # noqa: F401
import leaveflow.common.audit  # noqa: F401
import leaveflow.leave.models  # noqa: F401
import leaveflow.users.models  # noqa: F401

# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Bound to a fresh engine per test by the ``_setup_db`` fixture.
TestSessionFactory = async_sessionmaker(class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables on a fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestSessionFactory.configure(bind=engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from leaveflow.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Dates ───────────────────────────────────────────────────────────

def future(days: int) -> date:
    """A date *days* from today; submissions may not start in the past."""
    return date.today() + timedelta(days=days)


# ── Model factories ─────────────────────────────────────────────────

# Precomputed once; hashing per user would dominate test runtime.
TEST_PASSWORD = "password123"
_TEST_PASSWORD_HASH: Optional[str] = None


def _password_hash() -> str:
    global _TEST_PASSWORD_HASH
    if _TEST_PASSWORD_HASH is None:
        from leaveflow.auth.service import hash_password

        _TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)
    return _TEST_PASSWORD_HASH


def _make_user(
    *,
    role: UserRole = UserRole.general,
    name: Optional[str] = None,
    email: Optional[str] = None,
    entitlement: Decimal = Decimal("30"),
) -> dict:
    suffix = uuid.uuid4().hex[:8]
    return dict(
        id=uuid.uuid4(),
        name=name or f"{role.value.title()} User {suffix}",
        email=email or f"{role.value}.{suffix}@example.com",
        password_hash=_password_hash(),
        role=role,
        annual_leave_entitlement=entitlement,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_leave(
    user_id: uuid.UUID,
    *,
    leave_type: LeaveType = LeaveType.full_day,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    days_count: Optional[Decimal] = None,
    status: LeaveStatus = LeaveStatus.pending,
    half_day_period: Optional[HalfDayPeriod] = None,
    reason: str = "Family commitments out of town",
    created_at: Optional[datetime] = None,
) -> dict:
    start = start_date or future(10)
    end = end_date or start
    if days_count is None:
        if leave_type == LeaveType.half_day:
            days_count = Decimal("0.5")
        else:
            days_count = Decimal((end - start).days + 1)
    now = created_at or datetime.now(timezone.utc)
    return dict(
        id=uuid.uuid4(),
        user_id=user_id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        half_day_period=half_day_period,
        days_count=days_count,
        reason=reason,
        status=status,
        created_at=now,
        updated_at=now,
    )


async def _seed_user(db: AsyncSession, **kwargs):
    from leaveflow.users.models import User

    user = User(**_make_user(**kwargs))
    db.add(user)
    await db.commit()
    return user


async def _seed_leave(db: AsyncSession, user_id: uuid.UUID, **kwargs):
    from leaveflow.leave.models import LeaveRequest

    leave_req = LeaveRequest(**_make_leave(user_id, **kwargs))
    db.add(leave_req)
    await db.commit()
    return leave_req


@pytest.fixture
async def general_user(db):
    return await _seed_user(db, role=UserRole.general, name="Gina General")


@pytest.fixture
async def hr_user(db):
    return await _seed_user(db, role=UserRole.hr, name="Harry HR")


@pytest.fixture
async def admin_user(db):
    return await _seed_user(db, role=UserRole.admin, name="Ada Admin")


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    role: UserRole = UserRole.general,
    expired: bool = False,
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def auth_headers_for(user, *, expired: bool = False) -> dict[str, str]:
    """Return Bearer auth headers with a session persisted in the DB."""
    from leaveflow.auth.models import UserSession

    token = create_access_token(user.id, user.role, expired=expired)
    offset = timedelta(hours=-1 if expired else settings.JWT_EXPIRY_HOURS)
    async with TestSessionFactory() as session:
        session.add(
            UserSession(
                id=uuid.uuid4(),
                user_id=user.id,
                token_hash=hashlib.sha256(token.encode()).hexdigest(),
                expires_at=datetime.now(timezone.utc) + offset,
                is_revoked=False,
                created_at=datetime.now(timezone.utc),
            )
        )
        await session.commit()
    return {"Authorization": f"Bearer {token}"}
