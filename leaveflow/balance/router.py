"""Leave balance router — own balance, any user's balance (hr/admin), all users."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.auth.dependencies import get_current_user, require_role
from leaveflow.balance.schemas import LeaveBalanceOut
from leaveflow.balance.service import BalanceService
from leaveflow.common.constants import UserRole
from leaveflow.common.responses import ApiResponse
from leaveflow.database import get_db
from leaveflow.users.models import User

router = APIRouter(prefix="", tags=["leave-balance"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=ApiResponse[LeaveBalanceOut])
async def get_balance(
    user_id: Optional[uuid.UUID] = Query(None, description="Target user (HR/Admin only)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Entitlement, used, remaining and pending days for one user."""
    balance = await BalanceService.get_balance(db, user, user_id)
    return ApiResponse(data=balance)


# ── GET /all ────────────────────────────────────────────────────────

@router.get("/all", response_model=ApiResponse[list[LeaveBalanceOut]])
async def get_all_balances(
    role: Optional[UserRole] = Query(None, description="Filter users by role"),
    user: User = Depends(require_role(UserRole.hr, UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Balance summary for every user. HR and Admin only."""
    balances = await BalanceService.get_all_balances(db, user, role)
    return ApiResponse(data=balances)
