"""Leave policy engine — day counting, conflict detection, balance ledger
and the role-based approval state machine.

Everything here is pure: callers load users and leave requests first and pass
them in, and nothing in this module touches the database. Leave records are
accepted duck-typed (anything with ``status``, ``start_date``, ``end_date``
and ``days_count``), so the ORM model and plain test doubles both work.

Approval chain::

    general ──▶ hr ──▶ admin ──▶ (auto-approved at submission)
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel

from leaveflow.common.constants import LeaveStatus, LeaveType, UserRole
from leaveflow.common.exceptions import (
    AlreadyProcessedException,
    ForbiddenException,
    InvalidDateRangeError,
)

HALF_DAY = Decimal("0.5")
FULL_DAY = Decimal("1.0")

DUPLICATE_STATUSES: frozenset[LeaveStatus] = frozenset(
    {LeaveStatus.pending, LeaveStatus.approved}
)
APPROVED_STATUSES: frozenset[LeaveStatus] = frozenset({LeaveStatus.approved})

DUPLICATE_LEAVE_MESSAGE = (
    "A leave request already exists for the selected date(s). "
    "Please choose different dates."
)
APPROVED_OVERLAP_MESSAGE = (
    "You have an approved leave request that overlaps with these dates."
)


class LeaveRecord(Protocol):
    status: LeaveStatus
    start_date: date
    end_date: date
    days_count: Decimal


# ═════════════════════════════════════════════════════════════════════
# Day count
# ═════════════════════════════════════════════════════════════════════


def compute_days(
    leave_type: LeaveType,
    start_date: date,
    end_date: Optional[date] = None,
) -> Decimal:
    """Return the number of leave days a request consumes.

    half_day → 0.5, full_day → 1.0, multi_day → inclusive calendar span
    (both endpoints counted, weekends and holidays included).
    """
    if leave_type == LeaveType.half_day:
        return HALF_DAY
    if leave_type == LeaveType.full_day:
        return FULL_DAY

    end = end_date or start_date
    if end < start_date:
        raise InvalidDateRangeError()
    return Decimal((end - start_date).days + 1).quantize(FULL_DAY)


# ═════════════════════════════════════════════════════════════════════
# Conflict detection
# ═════════════════════════════════════════════════════════════════════


def _overlaps(
    existing_start: date,
    existing_end: date,
    candidate_start: date,
    candidate_end: date,
) -> bool:
    # Existing starts inside the candidate, ends inside it, or swallows it.
    return (
        candidate_start <= existing_start <= candidate_end
        or candidate_start <= existing_end <= candidate_end
        or (existing_start <= candidate_start and existing_end >= candidate_end)
    )


def has_conflict(
    existing: Iterable[LeaveRecord],
    candidate_start: date,
    candidate_end: date,
    statuses: Iterable[LeaveStatus],
) -> bool:
    """True if any record whose status is in *statuses* shares at least one
    day with the closed range ``[candidate_start, candidate_end]``."""
    wanted = frozenset(statuses)
    return any(
        _overlaps(rec.start_date, rec.end_date, candidate_start, candidate_end)
        for rec in existing
        if rec.status in wanted
    )


def find_conflicts(
    existing: Iterable[LeaveRecord],
    candidate_start: date,
    candidate_end: date,
) -> list[str]:
    """Run the duplicate check and the approved-overlap check.

    Both always run; each contributes its own message, so a candidate that
    collides with an approved leave yields two messages.
    """
    records = list(existing)
    messages: list[str] = []
    if has_conflict(records, candidate_start, candidate_end, DUPLICATE_STATUSES):
        messages.append(DUPLICATE_LEAVE_MESSAGE)
    if has_conflict(records, candidate_start, candidate_end, APPROVED_STATUSES):
        messages.append(APPROVED_OVERLAP_MESSAGE)
    return messages


# ═════════════════════════════════════════════════════════════════════
# Balance ledger
# ═════════════════════════════════════════════════════════════════════


class BalanceSummary(BaseModel):
    """Point-in-time consumption of a user's annual entitlement."""

    entitlement: Decimal
    used: Decimal
    pending: Decimal
    remaining: Decimal
    approved_count: int
    pending_count: int
    rejected_count: int


def summarize_balance(
    entitlement: Decimal,
    requests: Iterable[LeaveRecord],
) -> BalanceSummary:
    """Aggregate a user's requests against their entitlement.

    Only approved days reduce ``remaining``; pending days are reported
    separately as an advisory figure and rejected days are ignored.
    """
    used = Decimal("0")
    pending = Decimal("0")
    counts = {status: 0 for status in LeaveStatus}

    for req in requests:
        counts[req.status] += 1
        if req.status == LeaveStatus.approved:
            used += Decimal(req.days_count)
        elif req.status == LeaveStatus.pending:
            pending += Decimal(req.days_count)

    entitlement = Decimal(entitlement)
    return BalanceSummary(
        entitlement=entitlement,
        used=used,
        pending=pending,
        remaining=entitlement - used,
        approved_count=counts[LeaveStatus.approved],
        pending_count=counts[LeaveStatus.pending],
        rejected_count=counts[LeaveStatus.rejected],
    )


def remaining_days(entitlement: Decimal, requests: Iterable[LeaveRecord]) -> Decimal:
    return summarize_balance(entitlement, requests).remaining


def check_sufficient_balance(requested: Decimal, remaining: Decimal) -> Optional[str]:
    """Return an error message if *requested* exceeds *remaining*.

    The comparison is strict: asking for exactly the remaining balance passes.
    This is a point-in-time check, not a reservation.
    """
    if requested > remaining:
        return (
            f"Insufficient leave balance. You have {remaining} days remaining "
            f"but requested {requested} days."
        )
    return None


# ═════════════════════════════════════════════════════════════════════
# Approval state machine
# ═════════════════════════════════════════════════════════════════════

# requester role → the only role allowed to approve/reject its requests.
# Every UserRole must appear here; admin requests never wait for anyone.
APPROVAL_CHAIN: dict[UserRole, Optional[UserRole]] = {
    UserRole.general: UserRole.hr,
    UserRole.hr: UserRole.admin,
    UserRole.admin: None,
}

_HIERARCHY_MESSAGES: dict[UserRole, str] = {
    UserRole.general: "General user leave requests must be approved by HR.",
    UserRole.hr: "HR leave requests must be approved by Admin.",
    UserRole.admin: "Invalid approval request.",
}


def can_approve(approver_role: UserRole, requester_role: UserRole) -> bool:
    """Strict two-level escalation: hr approves general, admin approves hr.

    General users approve nothing. Raises ``KeyError`` for a role missing
    from ``APPROVAL_CHAIN`` rather than silently denying.
    """
    required = APPROVAL_CHAIN[requester_role]
    return required is not None and required == approver_role


def approval_hierarchy_message(requester_role: UserRole) -> str:
    return _HIERARCHY_MESSAGES[requester_role]


def initial_status(submitter_role: UserRole) -> LeaveStatus:
    """Admins skip the pending state entirely."""
    if APPROVAL_CHAIN[submitter_role] is None:
        return LeaveStatus.approved
    return LeaveStatus.pending


def ensure_pending(status: LeaveStatus) -> None:
    if status != LeaveStatus.pending:
        raise AlreadyProcessedException(status)


def authorize_transition(
    approver_role: UserRole,
    requester_role: UserRole,
    action: str,
) -> None:
    """Raise ``ForbiddenException`` unless *approver_role* may act on
    requests from *requester_role*. *action* is "approve" or "reject"."""
    if not can_approve(approver_role, requester_role):
        raise ForbiddenException(
            f"You are not authorized to {action} this leave request. "
            f"{approval_hierarchy_message(requester_role)}"
        )


# ═════════════════════════════════════════════════════════════════════
# Read access
# ═════════════════════════════════════════════════════════════════════


def can_view(viewer_id: uuid.UUID, viewer_role: UserRole, owner_id: uuid.UUID) -> bool:
    """General users see only their own requests; hr and admin see all."""
    if viewer_role == UserRole.general:
        return viewer_id == owner_id
    return True
