"""Leave service layer — submission gates, listing, approvals.

Business logic lives in ``leaveflow.leave.policy``; this module loads the
records the policy needs, applies its decisions and persists the outcome:
  - Submission: shape checks, duplicate + approved-overlap checks, balance gate,
    admin auto-approval
  - Listing / detail with the general-user ownership rule
  - Approve / reject through a conditional status update
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leaveflow.common.audit import create_audit_entry
from leaveflow.common.constants import LeaveStatus, LeaveType, UserRole
from leaveflow.common.exceptions import (
    AlreadyProcessedException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from leaveflow.common.pagination import PaginatedResponse, PaginationParams, paginate
from leaveflow.leave import policy
from leaveflow.leave.models import LeaveRequest
from leaveflow.leave.schemas import LeaveRequestCreate, LeaveRequestOut
from leaveflow.users.models import User

logger = logging.getLogger(__name__)

SUBMITTED_MESSAGE = "Leave request submitted successfully"
AUTO_APPROVED_MESSAGE = "Leave request auto-approved"

_RELATION_OPTIONS = (
    selectinload(LeaveRequest.user),
    selectinload(LeaveRequest.approver),
)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: submit, list, view, approve, reject."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _validate_shape(data: LeaveRequestCreate) -> dict[str, list[str]]:
        """Conditional field rules that depend on ``leave_type``."""
        errors: dict[str, list[str]] = {}

        if data.leave_type == LeaveType.multi_day:
            if data.end_date is None:
                errors["end_date"] = ["End date is required for multi-day leave"]
            elif data.end_date <= data.start_date:
                errors["end_date"] = ["End date must be after start date"]
        else:
            if data.end_date is not None and data.end_date != data.start_date:
                errors["end_date"] = [
                    "End date must be the same as start date for single-day leave"
                ]
            if data.leave_type == LeaveType.half_day and data.half_day_period is None:
                errors["half_day_period"] = [
                    "Half day period is required for half-day leave"
                ]

        return errors

    @staticmethod
    async def _get_user_requests(
        db: AsyncSession,
        user_id: uuid.UUID,
    ) -> list[LeaveRequest]:
        result = await db.execute(
            select(LeaveRequest).where(LeaveRequest.user_id == user_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _get_request_or_404(
        db: AsyncSession,
        request_id: uuid.UUID,
    ) -> LeaveRequest:
        """Load a request with ``user`` and ``approver`` attached."""
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .options(*_RELATION_OPTIONS)
            .execution_options(populate_existing=True)
        )
        leave_req = result.scalars().first()
        if leave_req is None:
            raise NotFoundException(
                "LeaveRequest", str(request_id), message="Leave request not found"
            )
        return leave_req

    @staticmethod
    def _build_response(req: LeaveRequest) -> LeaveRequestOut:
        return LeaveRequestOut.model_validate(req)

    @staticmethod
    async def _transition(
        db: AsyncSession,
        leave_req: LeaveRequest,
        actor: User,
        target: LeaveStatus,
        *,
        rejection_reason: Optional[str] = None,
    ) -> LeaveRequest:
        """Move a pending request to *target* in one conditional UPDATE.

        The ``status = pending`` predicate makes the check-then-write atomic:
        if another actor processed the request since it was read, no row is
        affected and the current status is reported instead.
        """
        now = datetime.now(timezone.utc)
        values: dict = {
            "status": target,
            "approved_by": actor.id,
            "approved_at": now,
            "updated_at": now,
        }
        if rejection_reason is not None:
            values["rejection_reason"] = rejection_reason

        result = await db.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == leave_req.id,
                LeaveRequest.status == LeaveStatus.pending,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = (
                await db.execute(
                    select(LeaveRequest.status).where(LeaveRequest.id == leave_req.id)
                )
            ).scalar_one()
            logger.warning(
                "Lost race on leave request %s: already %s",
                leave_req.id,
                current.value,
                extra={"leave_request_id": str(leave_req.id), "actor_id": str(actor.id)},
            )
            raise AlreadyProcessedException(current)

        await create_audit_entry(
            db,
            action="approve" if target == LeaveStatus.approved else "reject",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=actor.id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={
                "status": target.value,
                "rejection_reason": rejection_reason,
            },
        )
        return await LeaveService._get_request_or_404(db, leave_req.id)

    # ─────────────────────────────────────────────────────────────────
    # Submit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def submit(
        db: AsyncSession,
        user: User,
        data: LeaveRequestCreate,
    ) -> tuple[LeaveRequestOut, str]:
        """Submit a leave request on behalf of *user*.

        Validation runs in two stages. Shape errors (missing half-day period,
        bad multi-day end date) fail fast. Then the duplicate check, the
        approved-overlap check and the balance gate all run and report
        together. Admin submissions are created already approved by the
        submitter.

        Returns:
            (created request, user-facing message)
        """
        shape_errors = LeaveService._validate_shape(data)
        if shape_errors:
            raise ValidationException(shape_errors)

        end_date = data.end_date or data.start_date
        half_day_period = (
            data.half_day_period if data.leave_type == LeaveType.half_day else None
        )
        requested_days = policy.compute_days(data.leave_type, data.start_date, end_date)

        # ── Policy gates ────────────────────────────────────────────
        existing = await LeaveService._get_user_requests(db, user.id)
        errors: dict[str, list[str]] = {}

        conflicts = policy.find_conflicts(existing, data.start_date, end_date)
        if conflicts:
            errors["start_date"] = conflicts

        remaining = policy.remaining_days(user.annual_leave_entitlement, existing)
        balance_error = policy.check_sufficient_balance(requested_days, remaining)
        if balance_error:
            errors["leave_type"] = [balance_error]

        if errors:
            raise ValidationException(errors)

        # ── Create ──────────────────────────────────────────────────
        now = datetime.now(timezone.utc)
        status = policy.initial_status(user.role)
        leave_req = LeaveRequest(
            id=uuid.uuid4(),
            user_id=user.id,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=end_date,
            half_day_period=half_day_period,
            days_count=requested_days,
            reason=data.reason,
            status=status,
            created_at=now,
            updated_at=now,
        )
        if status == LeaveStatus.approved:
            leave_req.approved_by = user.id
            leave_req.approved_at = now

        db.add(leave_req)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=user.id,
            new_values={
                "leave_type": data.leave_type.value,
                "start_date": data.start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "days_count": str(requested_days),
                "status": status.value,
            },
        )

        logger.info(
            "Leave request %s submitted by %s (%s days, %s)",
            leave_req.id,
            user.id,
            requested_days,
            status.value,
            extra={"leave_request_id": str(leave_req.id), "actor_id": str(user.id)},
        )

        created = await LeaveService._get_request_or_404(db, leave_req.id)
        message = (
            AUTO_APPROVED_MESSAGE if status == LeaveStatus.approved else SUBMITTED_MESSAGE
        )
        return LeaveService._build_response(created), message

    # ─────────────────────────────────────────────────────────────────
    # List / detail
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        viewer: User,
        pagination: PaginationParams,
        *,
        status: Optional[LeaveStatus] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> PaginatedResponse:
        """List leave requests, newest first.

        General users always get their own requests (a ``user_id`` filter
        from them is ignored); hr and admin see everyone, optionally
        narrowed to one user.
        """
        query = select(LeaveRequest).order_by(LeaveRequest.created_at.desc())

        if viewer.role == UserRole.general:
            query = query.where(LeaveRequest.user_id == viewer.id)
        elif user_id is not None:
            query = query.where(LeaveRequest.user_id == user_id)

        if status is not None:
            query = query.where(LeaveRequest.status == status)

        page = await paginate(
            db, query, pagination, model=LeaveRequest, options=_RELATION_OPTIONS,
        )
        return PaginatedResponse[LeaveRequestOut](
            data=[LeaveService._build_response(r) for r in page.data],
            meta=page.meta,
        )

    @staticmethod
    async def get_request(
        db: AsyncSession,
        viewer: User,
        request_id: uuid.UUID,
    ) -> LeaveRequestOut:
        leave_req = await LeaveService._get_request_or_404(db, request_id)
        if not policy.can_view(viewer.id, viewer.role, leave_req.user_id):
            raise ForbiddenException("Unauthorized to view this leave request")
        return LeaveService._build_response(leave_req)

    # ─────────────────────────────────────────────────────────────────
    # Approve / Reject
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def approve(
        db: AsyncSession,
        approver: User,
        request_id: uuid.UUID,
    ) -> LeaveRequestOut:
        """Approve a pending request. HR approves general users, Admin approves HR."""
        leave_req = await LeaveService._get_request_or_404(db, request_id)
        policy.ensure_pending(leave_req.status)
        try:
            policy.authorize_transition(approver.role, leave_req.user.role, "approve")
        except ForbiddenException:
            logger.warning(
                "%s %s may not approve leave request %s of a %s user",
                approver.role.value,
                approver.id,
                leave_req.id,
                leave_req.user.role.value,
                extra={"leave_request_id": str(leave_req.id), "actor_id": str(approver.id)},
            )
            raise

        updated = await LeaveService._transition(
            db, leave_req, approver, LeaveStatus.approved,
        )
        logger.info(
            "Leave request %s approved by %s",
            updated.id,
            approver.id,
            extra={"leave_request_id": str(updated.id), "actor_id": str(approver.id)},
        )
        return LeaveService._build_response(updated)

    @staticmethod
    async def reject(
        db: AsyncSession,
        approver: User,
        request_id: uuid.UUID,
        rejection_reason: str,
    ) -> LeaveRequestOut:
        """Reject a pending request; same hierarchy rules as approval."""
        leave_req = await LeaveService._get_request_or_404(db, request_id)
        policy.ensure_pending(leave_req.status)
        try:
            policy.authorize_transition(approver.role, leave_req.user.role, "reject")
        except ForbiddenException:
            logger.warning(
                "%s %s may not reject leave request %s of a %s user",
                approver.role.value,
                approver.id,
                leave_req.id,
                leave_req.user.role.value,
                extra={"leave_request_id": str(leave_req.id), "actor_id": str(approver.id)},
            )
            raise

        updated = await LeaveService._transition(
            db, leave_req, approver, LeaveStatus.rejected,
            rejection_reason=rejection_reason,
        )
        logger.info(
            "Leave request %s rejected by %s",
            updated.id,
            approver.id,
            extra={"leave_request_id": str(updated.id), "actor_id": str(approver.id)},
        )
        return LeaveService._build_response(updated)
