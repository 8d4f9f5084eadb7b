"""Leave balance response schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel

from leaveflow.common.constants import UserRole
from leaveflow.common.responses import JsonDecimal


class BalanceBreakdown(BaseModel):
    """Number of requests per status."""

    approved_leaves: int = 0
    pending_leaves: int = 0
    rejected_leaves: int = 0


class LeaveBalanceOut(BaseModel):
    """A user's entitlement, consumption and remaining days."""

    user_id: uuid.UUID
    user_name: str
    user_email: str
    user_role: UserRole
    annual_leave_entitlement: JsonDecimal
    used_days: JsonDecimal
    remaining_days: JsonDecimal
    pending_requests_days: JsonDecimal
    breakdown: BalanceBreakdown
