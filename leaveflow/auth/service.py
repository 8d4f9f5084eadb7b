"""Auth service — password hashing, JWT issuance, session lifecycle."""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.auth.models import UserSession
from leaveflow.auth.schemas import LoginRequest, RegisterRequest
from leaveflow.common.audit import create_audit_entry
from leaveflow.common.constants import UserRole
from leaveflow.common.exceptions import ConflictError, UnauthorizedException
from leaveflow.config import settings
from leaveflow.users.models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


# ── Passwords ───────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# ── JWT helpers ─────────────────────────────────────────────────────

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def create_access_token(user_id: uuid.UUID, role: UserRole) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    expires_in = settings.JWT_EXPIRY_HOURS * 3600
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry; raises ``jose.JWTError`` on failure."""
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


# ── Session management ──────────────────────────────────────────────

async def create_session(db: AsyncSession, user: User) -> tuple[str, int]:
    """Issue an access token and persist its session. Returns (token, expires_in)."""
    token, expires_in = create_access_token(user.id, user.role)
    session = UserSession(
        user_id=user.id,
        token_hash=hash_token(token),
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        is_revoked=False,
    )
    db.add(session)
    await db.flush()
    return token, expires_in


async def revoke_session(db: AsyncSession, token_hash: str) -> None:
    """Mark a session as revoked by its token hash."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()


# ── Register / login ────────────────────────────────────────────────

async def register_user(db: AsyncSession, data: RegisterRequest) -> User:
    """Create an account; e-mail addresses are unique (case-insensitive)."""
    email = data.email.lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar() is not None:
        raise ConflictError("email", email)

    user = User(
        id=uuid.uuid4(),
        name=data.name,
        email=email,
        password_hash=hash_password(data.password),
        role=data.role,
        annual_leave_entitlement=settings.DEFAULT_ANNUAL_ENTITLEMENT,
    )
    db.add(user)
    await db.flush()

    await create_audit_entry(
        db,
        action="register",
        entity_type="user",
        entity_id=user.id,
        actor_id=user.id,
        new_values={"email": email, "role": user.role.value},
    )
    logger.info("Registered %s user %s", user.role.value, user.id)
    return user


async def authenticate(db: AsyncSession, data: LoginRequest) -> User:
    """Return the user matching the credentials, or raise 401."""
    result = await db.execute(select(User).where(User.email == data.email.lower()))
    user = result.scalars().first()
    if user is None or not verify_password(data.password, user.password_hash):
        logger.warning("Failed login for %s", data.email)
        raise UnauthorizedException("Invalid credentials")
    return user
