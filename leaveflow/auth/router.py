"""Auth router — register, login, logout, current user profile."""


from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.auth.dependencies import extract_bearer, get_current_user
from leaveflow.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, UserInfo
from leaveflow.auth.service import (
    authenticate,
    create_session,
    hash_token,
    register_user,
    revoke_session,
)
from leaveflow.common.rate_limit import limiter
from leaveflow.common.responses import ApiResponse
from leaveflow.config import settings
from leaveflow.database import get_db
from leaveflow.users.models import User

router = APIRouter(prefix="", tags=["auth"])


# ── POST /register ──────────────────────────────────────────────────

@router.post(
    "/register",
    response_model=ApiResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await register_user(db, body)
    token, expires_in = await create_session(db, user)
    return ApiResponse(
        message="User registered successfully",
        data=TokenResponse(
            user=UserInfo.model_validate(user), token=token, expires_in=expires_in,
        ),
    )


# ── POST /login ─────────────────────────────────────────────────────

@router.post("/login", response_model=ApiResponse[TokenResponse])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate(db, body)
    token, expires_in = await create_session(db, user)
    return ApiResponse(
        message="Login successful",
        data=TokenResponse(
            user=UserInfo.model_validate(user), token=token, expires_in=expires_in,
        ),
    )


# ── POST /logout ────────────────────────────────────────────────────

@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await revoke_session(db, hash_token(extract_bearer(request)))
    return ApiResponse(message="Logged out successfully")


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=ApiResponse[UserInfo])
async def me(user: User = Depends(get_current_user)):
    return ApiResponse(data=UserInfo.model_validate(user))
