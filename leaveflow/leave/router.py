"""Leave router — submit, list, view, approve and reject leave requests.

All endpoints require authentication. Approve/reject are limited to HR and
Admin; the service then enforces who may act on whose request.
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from leaveflow.auth.dependencies import get_current_user, require_role
from leaveflow.common.constants import LeaveStatus, UserRole
from leaveflow.common.exceptions import NotFoundException
from leaveflow.common.pagination import PaginatedResponse, PaginationParams
from leaveflow.common.responses import ApiResponse
from leaveflow.database import get_db
from leaveflow.leave.schemas import (
    LeaveRejectRequest,
    LeaveRequestCreate,
    LeaveRequestOut,
)
from leaveflow.leave.service import LeaveService
from leaveflow.users.models import User

router = APIRouter(prefix="", tags=["leave-requests"])


def leave_request_id(request_id: str = Path(...)) -> uuid.UUID:
    """Path id as a UUID. Ids that cannot exist are reported as not found."""
    try:
        return uuid.UUID(request_id)
    except ValueError:
        raise NotFoundException(
            "LeaveRequest", request_id, message="Leave request not found"
        ) from None


# ── POST / ──────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=ApiResponse[LeaveRequestOut],
    status_code=status.HTTP_201_CREATED,
)
async def submit_leave(
    body: LeaveRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a leave request. Checks duplicates, approved overlaps and balance."""
    leave_req, message = await LeaveService.submit(db, user, body)
    return ApiResponse(message=message, data=leave_req)


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=ApiResponse[PaginatedResponse[LeaveRequestOut]])
async def list_leave_requests(
    status: Optional[LeaveStatus] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None, description="HR/Admin only"),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Newest first. General users only ever see their own requests."""
    page = await LeaveService.list_requests(
        db, user, pagination, status=status, user_id=user_id,
    )
    return ApiResponse(data=page)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{request_id}", response_model=ApiResponse[LeaveRequestOut])
async def get_leave_request(
    user: User = Depends(get_current_user),
    request_id: uuid.UUID = Depends(leave_request_id),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await LeaveService.get_request(db, user, request_id))


# ── POST /{id}/approve ──────────────────────────────────────────────

@router.post("/{request_id}/approve", response_model=ApiResponse[LeaveRequestOut])
async def approve_leave(
    user: User = Depends(require_role(UserRole.hr, UserRole.admin)),
    request_id: uuid.UUID = Depends(leave_request_id),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending request. HR approves general users, Admin approves HR."""
    leave_req = await LeaveService.approve(db, user, request_id)
    return ApiResponse(message="Leave request approved successfully", data=leave_req)


# ── POST /{id}/reject ───────────────────────────────────────────────

@router.post("/{request_id}/reject", response_model=ApiResponse[LeaveRequestOut])
async def reject_leave(
    body: LeaveRejectRequest,
    user: User = Depends(require_role(UserRole.hr, UserRole.admin)),
    request_id: uuid.UUID = Depends(leave_request_id),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending request with a reason."""
    leave_req = await LeaveService.reject(db, user, request_id, body.rejection_reason)
    return ApiResponse(message="Leave request rejected", data=leave_req)
