"""User ORM model — owner and approver of leave requests."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leaveflow.common.constants import UserRole
from leaveflow.database import Base

if TYPE_CHECKING:
    from leaveflow.auth.models import UserSession
    from leaveflow.leave.models import LeaveRequest


class User(Base):
    """An account that submits leave and, for hr/admin, approves it."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.general,
    )
    annual_leave_entitlement: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 1), nullable=False, default=Decimal("30")
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now()
    )

    # ── Relationships ───────────────────────────────────────────────
    leave_requests: Mapped[list[LeaveRequest]] = relationship(
        back_populates="user", foreign_keys="LeaveRequest.user_id",
    )
    sessions: Mapped[list[UserSession]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        return f"<User {self.email!r} ({self.role.value})>"
