"""Demo data seeder — one admin, two HR users, three general users and a
small leave history covering every status.

Usage:
    python -m leaveflow.seed              # create tables if needed, then seed
    python -m leaveflow.seed --password s3cret-pass

Existing accounts (matched by e-mail) are left untouched, so re-running is safe.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.auth.service import hash_password
from leaveflow.common.constants import HalfDayPeriod, LeaveStatus, LeaveType, UserRole
from leaveflow.config import settings
from leaveflow.leave import policy
from leaveflow.leave.models import LeaveRequest
from leaveflow.users.models import User

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password"

DEMO_USERS = [
    ("Admin User", "admin@example.com", UserRole.admin),
    ("HR Manager", "hr@example.com", UserRole.hr),
    ("HR Staff", "hr2@example.com", UserRole.hr),
    ("John Doe", "john@example.com", UserRole.general),
    ("Jane Smith", "jane@example.com", UserRole.general),
    ("Bob Johnson", "bob@example.com", UserRole.general),
]

# (owner email, leave type, start offset, end offset, status, reason)
# Offsets are days relative to today.
DEMO_LEAVES = [
    ("john@example.com", LeaveType.full_day, -30, -30, LeaveStatus.approved,
     "Medical appointment for annual checkup"),
    ("john@example.com", LeaveType.multi_day, -20, -18, LeaveStatus.approved,
     "Family vacation to the beach"),
    ("john@example.com", LeaveType.half_day, -10, -10, LeaveStatus.approved,
     "Personal errands in the morning"),
    ("john@example.com", LeaveType.full_day, 7, 7, LeaveStatus.pending,
     "Attending a friend's wedding ceremony"),
    ("jane@example.com", LeaveType.multi_day, 14, 16, LeaveStatus.pending,
     "Visiting family in another city"),
    ("jane@example.com", LeaveType.full_day, -5, -5, LeaveStatus.rejected,
     "Day off to move apartments"),
    ("hr2@example.com", LeaveType.full_day, 10, 10, LeaveStatus.pending,
     "Dentist appointment in the afternoon"),
]

# requester role -> demo approver e-mail
_APPROVERS = {
    UserRole.general: "hr@example.com",
    UserRole.hr: "admin@example.com",
}


async def seed(
    db: AsyncSession,
    *,
    password: str = DEMO_PASSWORD,
    today: Optional[date] = None,
) -> dict[str, int]:
    """Insert demo users and leave requests. Returns counts of new rows."""
    today = today or date.today()
    now = datetime.now(timezone.utc)
    password_hash = hash_password(password)

    existing = {
        u.email: u for u in (await db.execute(select(User))).scalars().all()
    }
    users: dict[str, User] = dict(existing)
    created_users = 0
    for name, email, role in DEMO_USERS:
        if email in users:
            continue
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            annual_leave_entitlement=settings.DEFAULT_ANNUAL_ENTITLEMENT,
        )
        db.add(user)
        users[email] = user
        created_users += 1
    await db.flush()

    created_leaves = 0
    for email, leave_type, start_off, end_off, status, reason in DEMO_LEAVES:
        owner = users[email]
        if email in existing:
            # History is only generated for accounts created by this run.
            continue
        start = today + timedelta(days=start_off)
        end = today + timedelta(days=end_off)
        leave_req = LeaveRequest(
            user_id=owner.id,
            leave_type=leave_type,
            start_date=start,
            end_date=end,
            half_day_period=(
                HalfDayPeriod.first_half if leave_type == LeaveType.half_day else None
            ),
            days_count=policy.compute_days(leave_type, start, end),
            reason=reason,
            status=status,
            created_at=now,
            updated_at=now,
        )
        if status != LeaveStatus.pending:
            leave_req.approved_by = users[_APPROVERS[owner.role]].id
            leave_req.approved_at = now
        if status == LeaveStatus.rejected:
            leave_req.rejection_reason = "Team coverage is too thin on that day"
        db.add(leave_req)
        created_leaves += 1
    await db.flush()

    logger.info("Seeded %d users and %d leave requests", created_users, created_leaves)
    return {"users": created_users, "leave_requests": created_leaves}


async def _run(password: str) -> dict[str, int]:
    from leaveflow.database import async_session_factory, create_tables, engine

    await create_tables()
    try:
        async with async_session_factory() as session:
            counts = await seed(session, password=password)
            await session.commit()
    finally:
        await engine.dispose()
    return counts


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed Leaveflow with demo data.")
    parser.add_argument(
        "--password",
        default=DEMO_PASSWORD,
        help=f"password for every demo account (default: {DEMO_PASSWORD!r})",
    )
    args = parser.parse_args(argv)

    from leaveflow.common.logging import configure_logging

    configure_logging(settings.LOG_LEVEL)
    counts = asyncio.run(_run(args.password))
    print(f"Created {counts['users']} users and {counts['leave_requests']} leave requests.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
