"""Balance service — runs the ledger for one user or for everyone."""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.balance.schemas import BalanceBreakdown, LeaveBalanceOut
from leaveflow.common.constants import UserRole
from leaveflow.common.exceptions import ForbiddenException, NotFoundException
from leaveflow.leave import policy
from leaveflow.leave.models import LeaveRequest
from leaveflow.users.models import User


class BalanceService:
    """Async balance reporting built on ``policy.summarize_balance``."""

    @staticmethod
    def _build_balance(user: User, requests: Iterable[LeaveRequest]) -> LeaveBalanceOut:
        summary = policy.summarize_balance(user.annual_leave_entitlement, requests)
        return LeaveBalanceOut(
            user_id=user.id,
            user_name=user.name,
            user_email=user.email,
            user_role=user.role,
            annual_leave_entitlement=summary.entitlement,
            used_days=summary.used,
            remaining_days=summary.remaining,
            pending_requests_days=summary.pending,
            breakdown=BalanceBreakdown(
                approved_leaves=summary.approved_count,
                pending_leaves=summary.pending_count,
                rejected_leaves=summary.rejected_count,
            ),
        )

    @staticmethod
    async def get_balance(
        db: AsyncSession,
        viewer: User,
        user_id: Optional[uuid.UUID] = None,
    ) -> LeaveBalanceOut:
        """Balance for *viewer*, or for *user_id* when the viewer is hr/admin.

        General users asking for anyone else are refused; asking for
        themselves by id is allowed.
        """
        if viewer.role == UserRole.general and user_id and user_id != viewer.id:
            raise ForbiddenException(
                "Unauthorized. You can only view your own leave balance."
            )

        target_id = viewer.id if user_id is None else user_id
        target = await db.get(User, target_id)
        if target is None:
            raise NotFoundException("User", str(target_id), message="User not found")

        result = await db.execute(
            select(LeaveRequest).where(LeaveRequest.user_id == target.id)
        )
        return BalanceService._build_balance(target, result.scalars().all())

    @staticmethod
    async def get_all_balances(
        db: AsyncSession,
        viewer: User,
        role: Optional[UserRole] = None,
    ) -> list[LeaveBalanceOut]:
        """One ledger evaluation per user, optionally limited to one role."""
        if viewer.role == UserRole.general:
            raise ForbiddenException(
                "Unauthorized. Only HR and Admin can view all users leave balance."
            )

        user_query = select(User).order_by(User.name)
        if role is not None:
            user_query = user_query.where(User.role == role)
        users = (await db.execute(user_query)).scalars().all()
        if not users:
            return []

        result = await db.execute(
            select(LeaveRequest).where(
                LeaveRequest.user_id.in_([u.id for u in users])
            )
        )
        by_user: dict[uuid.UUID, list[LeaveRequest]] = defaultdict(list)
        for req in result.scalars().all():
            by_user[req.user_id].append(req)

        return [BalanceService._build_balance(u, by_user[u.id]) for u in users]
