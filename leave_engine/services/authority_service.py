"""
Approval authority resolver

Roles form a closed set {EMPLOYEE, MANAGER, HR, ADMIN}. Authority is decided
from the approver's role and the requester's manager link only; nothing here
touches the database.
"""
from leave_engine.core.exceptions import Unauthorized
from leave_engine.models.employee import Employee
from leave_engine.models.leave import LeaveRequest, LeaveStatus


def _status_value(request: LeaveRequest):
    return request.status.value if request.status is not None else None


def can_approve(approver: Employee, request: LeaveRequest) -> bool:
    """
    True if approver may approve or reject the request.

    - Self-approval is never permitted, whatever the role
    - HR and ADMIN may act on anyone else's request
    - Otherwise only the requester's direct manager may act
    """
    if approver.id == request.requester_id:
        return False
    if approver.is_privileged:
        return True
    requester = request.requester
    return requester is not None and requester.manager_id is not None and approver.id == requester.manager_id


def ensure_can_approve(approver: Employee, request: LeaveRequest) -> None:
    if approver.id == request.requester_id:
        raise Unauthorized(
            "Employees cannot approve or reject their own leave",
            entity_id=request.id,
            current_status=_status_value(request),
        )
    if not can_approve(approver, request):
        raise Unauthorized(
            "Only the requester's manager, HR or Admin may act on this leave request",
            entity_id=request.id,
            current_status=_status_value(request),
        )


def can_cancel(actor: Employee, request: LeaveRequest) -> bool:
    """
    Pending: the requester, anyone allowed to approve it, HR/Admin.
    Approved: HR/Admin only, including on their own request.
    """
    if request.status == LeaveStatus.PENDING:
        return actor.id == request.requester_id or can_approve(actor, request)
    if request.status == LeaveStatus.APPROVED:
        return actor.is_privileged
    return False


def ensure_can_cancel(actor: Employee, request: LeaveRequest) -> None:
    if not can_cancel(actor, request):
        if request.status == LeaveStatus.APPROVED:
            message = "Only HR or Admin may cancel an approved leave request"
        else:
            message = "You are not allowed to cancel this leave request"
        raise Unauthorized(message, entity_id=request.id, current_status=_status_value(request))


def can_view(actor: Employee, request: LeaveRequest) -> bool:
    """The requester, anyone who may approve it, and HR/Admin may read a request"""
    return actor.id == request.requester_id or actor.is_privileged or can_approve(actor, request)
