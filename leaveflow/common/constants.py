"""Enums and constants for LeaveFlow — matching the database ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    general = "general"
    hr = "hr"
    admin = "admin"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    full_day = "full_day"
    half_day = "half_day"
    multi_day = "multi_day"


class HalfDayPeriod(str, enum.Enum):
    first_half = "first_half"
    second_half = "second_half"


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# ── Field limits ────────────────────────────────────────────────────

REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 1000
REJECTION_REASON_MIN_LENGTH = 10
REJECTION_REASON_MAX_LENGTH = 500
PASSWORD_MIN_LENGTH = 8


# ── Pagination ──────────────────────────────────────────────────────

DEFAULT_PAGE_SIZE = 15
MAX_PAGE_SIZE = 100
