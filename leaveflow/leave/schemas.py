"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out                → response bodies (read)
  - *Brief              → compact embedded representations
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from leaveflow.common.constants import (
    REASON_MAX_LENGTH,
    REASON_MIN_LENGTH,
    REJECTION_REASON_MAX_LENGTH,
    REJECTION_REASON_MIN_LENGTH,
    HalfDayPeriod,
    LeaveStatus,
    LeaveType,
    UserRole,
)
from leaveflow.common.responses import JsonDecimal


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class UserBrief(BaseModel):
    """Minimal user info embedded in leave responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: UserRole


# ═════════════════════════════════════════════════════════════════════
# Validation helpers
# ═════════════════════════════════════════════════════════════════════


def _check_length(value: str, label: str, min_length: int, max_length: int) -> str:
    if len(value) < min_length:
        raise PydanticCustomError(
            "string_too_short",
            "{label} must be at least {min_length} characters",
            {"label": label, "min_length": min_length},
        )
    if len(value) > max_length:
        raise PydanticCustomError(
            "string_too_long",
            "{label} cannot exceed {max_length} characters",
            {"label": label, "max_length": max_length},
        )
    return value


def _check_choice(value: Any, enum_cls: type, message: str) -> Any:
    if isinstance(value, enum_cls) or (
        isinstance(value, str) and value in {m.value for m in enum_cls}
    ):
        return value
    raise PydanticCustomError("enum", message)


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Create
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for submitting a leave request.

    Conditional rules that depend on ``leave_type`` (half-day period,
    multi-day end date) are enforced by the service so that every failing
    field is reported under its own key.
    """

    leave_type: LeaveType
    start_date: date = Field(..., description="Leave start date (today or later)")
    end_date: Optional[date] = Field(
        None, description="Required for multi_day; must equal start_date otherwise"
    )
    half_day_period: Optional[HalfDayPeriod] = Field(
        None, description="Required for half_day leave"
    )
    reason: str = Field(
        ...,
        description=f"Reason for leave ({REASON_MIN_LENGTH}-{REASON_MAX_LENGTH} chars)",
    )

    @field_validator("leave_type", mode="before")
    @classmethod
    def leave_type_known(cls, v: Any) -> Any:
        return _check_choice(
            v, LeaveType, "Leave type must be one of: full_day, half_day, multi_day"
        )

    @field_validator("half_day_period", mode="before")
    @classmethod
    def half_day_period_known(cls, v: Any) -> Any:
        if v is None:
            return v
        return _check_choice(
            v,
            HalfDayPeriod,
            "Half day period must be either first_half or second_half",
        )

    @field_validator("start_date")
    @classmethod
    def start_date_not_past(cls, v: date) -> date:
        if v < date.today():
            raise PydanticCustomError(
                "date_in_past", "Start date cannot be in the past"
            )
        return v

    @field_validator("reason")
    @classmethod
    def reason_length(cls, v: str) -> str:
        return _check_length(v, "Reason", REASON_MIN_LENGTH, REASON_MAX_LENGTH)


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    half_day_period: Optional[HalfDayPeriod] = None
    days_count: JsonDecimal
    reason: str
    status: LeaveStatus
    approved_by: Optional[uuid.UUID] = None
    rejection_reason: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Loaded eagerly by the service
    user: Optional[UserBrief] = None
    approver: Optional[UserBrief] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Reject
# ═════════════════════════════════════════════════════════════════════


class LeaveRejectRequest(BaseModel):
    """Payload for rejecting a leave request."""

    rejection_reason: str

    @field_validator("rejection_reason")
    @classmethod
    def rejection_reason_length(cls, v: str) -> str:
        return _check_length(
            v,
            "Rejection reason",
            REJECTION_REASON_MIN_LENGTH,
            REJECTION_REASON_MAX_LENGTH,
        )
