"""Common module — shared utilities for LeaveFlow."""

from leaveflow.common.audit import AuditTrail, create_audit_entry
from leaveflow.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    HalfDayPeriod,
    LeaveStatus,
    LeaveType,
    UserRole,
)
from leaveflow.common.exceptions import (
    AlreadyProcessedException,
    AppException,
    ConflictError,
    ForbiddenException,
    InvalidDateRangeError,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)
from leaveflow.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)
from leaveflow.common.responses import ApiResponse, JsonDecimal

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "HalfDayPeriod",
    "LeaveStatus",
    "LeaveType",
    "UserRole",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AlreadyProcessedException",
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "InvalidDateRangeError",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
    # Responses
    "ApiResponse",
    "JsonDecimal",
]
