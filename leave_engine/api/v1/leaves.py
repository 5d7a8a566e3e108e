"""
Leave request endpoints
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leave_engine.core.deps import get_db, get_current_user
from leave_engine.core.exceptions import Unauthorized
from leave_engine.models.employee import Employee
from leave_engine.models.leave import LeaveStatus
from leave_engine.schemas.leave import (
    LeaveSubmitRequest,
    ApproveRequest,
    RejectRequest,
    CancelRequest,
    LeaveOut,
    LeaveListResponse,
    AuditEntryOut,
)
from leave_engine.services import leave_service
from leave_engine.services.audit_service import list_entries
from leave_engine.services.authority_service import can_view

router = APIRouter()


def _visible_request(db: Session, request_id: int, current_user: Employee):
    leave_request = leave_service.get_request(db, request_id)
    if not can_view(current_user, leave_request):
        raise Unauthorized(
            "You are not allowed to view this leave request",
            entity_id=request_id,
            current_status=leave_request.status.value,
        )
    return leave_request


@router.post("", response_model=LeaveOut, status_code=201)
def submit_leave_endpoint(
    leave_data: LeaveSubmitRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Submit a leave request for the current user (created PENDING)

    Validations, in order:
    - Date range (start <= end, same calendar year, at least one working day)
    - No overlap with the user's PENDING/APPROVED requests
    - Balance covers the days after subtracting other pending requests
    """
    return leave_service.submit_request(
        db,
        requester=current_user,
        leave_type_id=leave_data.leave_type_id,
        start_date=leave_data.start_date,
        end_date=leave_data.end_date,
        reason=leave_data.reason,
        start_half_day=leave_data.start_half_day,
        end_half_day=leave_data.end_half_day,
    )


@router.get("/my", response_model=LeaveListResponse)
def list_my_leaves_endpoint(
    status: Optional[LeaveStatus] = Query(None, description="Filter by status"),
    year: Optional[int] = Query(None, description="Filter by calendar year"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """List the current user's leave requests (all statuses unless filtered)"""
    items = leave_service.list_requests_for_employee(db, current_user.id, status=status, year=year)
    return LeaveListResponse(items=[LeaveOut.model_validate(r) for r in items], total=len(items))


@router.get("/pending", response_model=LeaveListResponse)
def list_pending_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Pending requests the current user may decide

    - HR/ADMIN: every other employee's pending requests
    - Others: pending requests of direct reports
    """
    items = leave_service.list_pending_for_approver(db, current_user)
    return LeaveListResponse(items=[LeaveOut.model_validate(r) for r in items], total=len(items))


@router.get("/{leave_request_id}", response_model=LeaveOut)
def get_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    return _visible_request(db, leave_request_id, current_user)


@router.post("/{leave_request_id}/approve", response_model=LeaveOut)
def approve_leave_endpoint(
    leave_request_id: int,
    approval_data: Optional[ApproveRequest] = None,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Approve a PENDING leave request

    Authority: the requester's direct manager, HR or ADMIN; never the
    requester. Days are committed to the balance in the same transaction.
    """
    comment = approval_data.comment if approval_data else None
    return leave_service.approve_request(db, leave_request_id, approver=current_user, comment=comment)


@router.post("/{leave_request_id}/reject", response_model=LeaveOut)
def reject_leave_endpoint(
    leave_request_id: int,
    reject_data: RejectRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Reject a PENDING leave request (reason required)

    Authority same as approve. No balance movement.
    """
    return leave_service.reject_request(db, leave_request_id, approver=current_user, reason=reject_data.reason)


@router.post("/{leave_request_id}/cancel", response_model=LeaveOut)
def cancel_leave_endpoint(
    leave_request_id: int,
    cancel_data: Optional[CancelRequest] = None,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Cancel a leave request

    - PENDING: the requester or anyone who may approve it
    - APPROVED: HR/ADMIN only; days are released
    """
    comment = cancel_data.comment if cancel_data else None
    return leave_service.cancel_request(db, leave_request_id, actor=current_user, comment=comment)


@router.get("/{leave_request_id}/audit", response_model=List[AuditEntryOut])
def leave_audit_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Audit trail of one leave request, oldest first"""
    _visible_request(db, leave_request_id, current_user)
    return list_entries(db, leave_service.ENTITY_TYPE, leave_request_id)
