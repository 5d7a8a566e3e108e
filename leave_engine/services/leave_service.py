"""
Leave request state machine

    PENDING -> APPROVED | REJECTED | CANCELLED
    APPROVED -> CANCELLED

Every transition is a single transaction: the status change, any ledger
movement and the audit entries commit together or not at all. The status
change itself is a compare-and-swap on (status, version), so two actors racing
on the same request cannot both win. Notifications go out after commit.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from leave_engine.core.exceptions import (
    InsufficientBalance,
    InvalidRange,
    InvalidTransition,
    LockContention,
    NotFound,
    ValidationFailed,
)
from leave_engine.models.employee import Employee
from leave_engine.models.leave import LeaveRequest, LeaveStatus
from leave_engine.services import ledger_service as ledger
from leave_engine.services import notification_service
from leave_engine.services.audit_service import record
from leave_engine.services.authority_service import ensure_can_approve, ensure_can_cancel
from leave_engine.services.calendar_service import resolve_days
from leave_engine.services.leave_type_service import get_leave_type
from leave_engine.services.transaction import atomic, run_with_retry
from leave_engine.services.validation_service import get_active_leave_type, validate_submission
from leave_engine.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

ENTITY_TYPE = "leave_request"

ALLOWED_TRANSITIONS = {
    LeaveStatus.PENDING: {LeaveStatus.APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED},
    LeaveStatus.APPROVED: {LeaveStatus.CANCELLED},
}


def request_snapshot(leave_request: LeaveRequest) -> Dict[str, Any]:
    return {
        "requester_id": leave_request.requester_id,
        "leave_type_id": leave_request.leave_type_id,
        "start_date": leave_request.start_date,
        "end_date": leave_request.end_date,
        "start_half_day": leave_request.start_half_day,
        "end_half_day": leave_request.end_half_day,
        "days_count": leave_request.days_count,
        "status": leave_request.status,
        "approver_id": leave_request.approver_id,
        "decision_comment": leave_request.decision_comment,
        "cancelled_by_id": leave_request.cancelled_by_id,
        "version": leave_request.version,
    }


def get_request(db: Session, request_id: int) -> LeaveRequest:
    """Load a request, always re-reading status and version from the database"""
    leave_request = (
        db.query(LeaveRequest)
        .filter(LeaveRequest.id == request_id)
        .populate_existing()
        .first()
    )
    if not leave_request:
        raise NotFound(f"Leave request with id {request_id} not found", entity_id=request_id)
    return leave_request


def list_requests_for_employee(
    db: Session,
    employee_id: int,
    status: Optional[LeaveStatus] = None,
    year: Optional[int] = None,
) -> List[LeaveRequest]:
    query = db.query(LeaveRequest).filter(LeaveRequest.requester_id == employee_id)
    if status is not None:
        query = query.filter(LeaveRequest.status == status)
    if year is not None:
        query = query.filter(
            LeaveRequest.start_date >= date(year, 1, 1),
            LeaveRequest.start_date <= date(year, 12, 31),
        )
    return query.order_by(LeaveRequest.start_date.desc(), LeaveRequest.id.desc()).all()


def list_pending_for_approver(db: Session, approver: Employee) -> List[LeaveRequest]:
    """
    Pending requests the approver may act on: everyone else's for HR/Admin,
    direct reports' for anyone else.
    """
    query = db.query(LeaveRequest).filter(
        LeaveRequest.status == LeaveStatus.PENDING,
        LeaveRequest.requester_id != approver.id,
    )
    if not approver.is_privileged:
        query = query.join(Employee, Employee.id == LeaveRequest.requester_id).filter(
            Employee.manager_id == approver.id
        )
    return query.order_by(LeaveRequest.start_date.asc(), LeaveRequest.id.asc()).all()


def _require_status(leave_request: LeaveRequest, to_status: LeaveStatus, action: str) -> None:
    if to_status not in ALLOWED_TRANSITIONS.get(leave_request.status, set()):
        raise InvalidTransition(
            f"Cannot {action} a leave request with status {leave_request.status.value}",
            entity_id=leave_request.id,
            current_status=leave_request.status.value,
        )


def _transition(
    db: Session,
    leave_request: LeaveRequest,
    to_status: LeaveStatus,
    **values,
) -> LeaveRequest:
    """
    Move the request to to_status if nobody else moved it first.

    The UPDATE matches on the status and version read by this transaction;
    zero matched rows means a concurrent transition won.
    """
    from_status = leave_request.status
    result = db.execute(
        update(LeaveRequest)
        .where(
            LeaveRequest.id == leave_request.id,
            LeaveRequest.status == from_status,
            LeaveRequest.version == leave_request.version,
        )
        .values(status=to_status, version=LeaveRequest.version + 1, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise LockContention(
            "The leave request was changed by another operation, retry the request",
            entity_id=leave_request.id,
            current_status=from_status.value,
        )
    db.refresh(leave_request)
    logger.info(
        "leave request %s: %s -> %s (version %s)",
        leave_request.id, from_status.value, to_status.value, leave_request.version,
    )
    return leave_request


def _locked_balance(db: Session, leave_request: LeaveRequest, actor_id: int):
    balance = ledger.lock_balance(db, leave_request.requester_id, leave_request.leave_type_id, leave_request.year)
    if balance is None:
        created = ledger.ensure_balance(
            db, leave_request.requester, leave_request.leave_type, leave_request.year, actor_id=actor_id
        )
        if created is None:
            ledger.initialize_balance(
                db, leave_request.requester, leave_request.leave_type, leave_request.year,
                actor_id=actor_id, entitled=False,
            )
        balance = ledger.lock_balance(
            db, leave_request.requester_id, leave_request.leave_type_id, leave_request.year
        )
    return balance


def submit_request(
    db: Session,
    requester: Employee,
    leave_type_id: int,
    start_date: date,
    end_date: date,
    reason: Optional[str] = None,
    start_half_day: bool = False,
    end_half_day: bool = False,
) -> LeaveRequest:
    """
    Validate and persist a new PENDING request.

    Raises InvalidRange, OverlappingRequest, InsufficientBalance (stage
    "submission"), NotFound or ValidationFailed for the leave type, and
    LockContention once retries are exhausted.
    """
    requester_id = requester.id

    def _attempt() -> LeaveRequest:
        with atomic(db, entity_id=requester_id):
            leave_type = get_active_leave_type(db, leave_type_id)
            days_count = validate_submission(
                db,
                requester,
                leave_type,
                start_date,
                end_date,
                start_half_day=start_half_day,
                end_half_day=end_half_day,
            )
            leave_request = LeaveRequest(
                requester_id=requester_id,
                leave_type_id=leave_type.id,
                start_date=start_date,
                end_date=end_date,
                start_half_day=start_half_day,
                end_half_day=end_half_day,
                days_count=days_count,
                reason=reason,
                status=LeaveStatus.PENDING,
                version=1,
            )
            db.add(leave_request)
            db.flush()
            record(
                db,
                entity_type=ENTITY_TYPE,
                entity_id=leave_request.id,
                actor_id=requester_id,
                action="SUBMIT",
                before=None,
                after=request_snapshot(leave_request),
                comment=reason,
            )
        return leave_request

    leave_request = run_with_retry(_attempt, entity_id=requester_id)
    db.refresh(leave_request)
    logger.info(
        "leave submitted: id=%s requester_id=%s leave_type_id=%s %s..%s days=%s",
        leave_request.id, requester_id, leave_type_id, start_date, end_date, leave_request.days_count,
    )
    notification_service.dispatch("SUBMITTED", leave_request, actor_id=requester_id)
    return leave_request


def approve_request(
    db: Session,
    request_id: int,
    approver: Employee,
    comment: Optional[str] = None,
) -> LeaveRequest:
    """
    Approve a PENDING request and commit its days to the ledger.

    The balance row is locked, the day count is recomputed against the current
    calendar, and the hard check (allocated + carried - used >= days) runs
    under the lock. On failure nothing changes and the request stays PENDING.
    """
    approver_id = approver.id

    def _attempt() -> LeaveRequest:
        with atomic(db, entity_id=request_id):
            leave_request = get_request(db, request_id)
            ensure_can_approve(approver, leave_request)
            _require_status(leave_request, LeaveStatus.APPROVED, "approve")
            before = request_snapshot(leave_request)

            leave_type = get_leave_type(db, leave_request.leave_type_id, for_update=True, shared=True)
            balance = _locked_balance(db, leave_request, approver_id)

            stored_days = Decimal(str(leave_request.days_count))
            days_count = resolve_days(
                db,
                leave_request.start_date,
                leave_request.end_date,
                leave_request.start_half_day,
                leave_request.end_half_day,
                entity_id=leave_request.id,
            )
            drift_note = None
            if days_count != stored_days:
                logger.warning(
                    "day count drift on approval: request_id=%s submitted=%s now=%s",
                    leave_request.id, stored_days, days_count,
                )
                drift_note = f"day count recomputed from {stored_days} to {days_count}"
            if days_count <= 0:
                raise InvalidRange(
                    "Leave request no longer includes any working day",
                    entity_id=leave_request.id,
                    current_status=leave_request.status.value,
                )

            available = ledger.available_balance(db, balance, include_pending=False)
            if days_count > available and not leave_type.allows_negative_balance:
                raise InsufficientBalance(
                    f"Insufficient {leave_type.name} balance: requested {days_count}, available {available}",
                    stage=InsufficientBalance.APPROVAL,
                    requested=days_count,
                    available=available,
                    entity_id=leave_request.id,
                    current_status=leave_request.status.value,
                )

            _transition(
                db,
                leave_request,
                LeaveStatus.APPROVED,
                approver_id=approver_id,
                decision_at=now_utc(),
                decision_comment=comment,
                days_count=days_count,
            )
            ledger.commit_usage(db, balance, days_count, approver_id, request_id=leave_request.id)
            record(
                db,
                entity_type=ENTITY_TYPE,
                entity_id=leave_request.id,
                actor_id=approver_id,
                action="APPROVE",
                before=before,
                after=request_snapshot(leave_request),
                comment="; ".join(c for c in (comment, drift_note) if c) or None,
            )
        return leave_request

    leave_request = run_with_retry(_attempt, entity_id=request_id)
    notification_service.dispatch("APPROVED", leave_request, actor_id=approver_id)
    return leave_request


def reject_request(
    db: Session,
    request_id: int,
    approver: Employee,
    reason: str,
) -> LeaveRequest:
    """Reject a PENDING request. Pending days are not stored, so the ledger is untouched."""
    if reason is None or not reason.strip():
        raise ValidationFailed("A rejection reason is required", entity_id=request_id)
    approver_id = approver.id

    def _attempt() -> LeaveRequest:
        with atomic(db, entity_id=request_id):
            leave_request = get_request(db, request_id)
            ensure_can_approve(approver, leave_request)
            _require_status(leave_request, LeaveStatus.REJECTED, "reject")
            before = request_snapshot(leave_request)
            _transition(
                db,
                leave_request,
                LeaveStatus.REJECTED,
                approver_id=approver_id,
                decision_at=now_utc(),
                decision_comment=reason.strip(),
            )
            record(
                db,
                entity_type=ENTITY_TYPE,
                entity_id=leave_request.id,
                actor_id=approver_id,
                action="REJECT",
                before=before,
                after=request_snapshot(leave_request),
                comment=reason.strip(),
            )
        return leave_request

    leave_request = run_with_retry(_attempt, entity_id=request_id)
    notification_service.dispatch("REJECTED", leave_request, actor_id=approver_id)
    return leave_request


def cancel_request(
    db: Session,
    request_id: int,
    actor: Employee,
    comment: Optional[str] = None,
) -> LeaveRequest:
    """
    Cancel a PENDING or APPROVED request.

    Cancelling an APPROVED request (HR/Admin only) releases its days back to
    the balance under the row lock.
    """
    actor_id = actor.id

    def _attempt() -> LeaveRequest:
        with atomic(db, entity_id=request_id):
            leave_request = get_request(db, request_id)
            _require_status(leave_request, LeaveStatus.CANCELLED, "cancel")
            ensure_can_cancel(actor, leave_request)
            before = request_snapshot(leave_request)
            was_approved = leave_request.status == LeaveStatus.APPROVED

            balance = _locked_balance(db, leave_request, actor_id) if was_approved else None
            released_days = leave_request.days_count

            _transition(
                db,
                leave_request,
                LeaveStatus.CANCELLED,
                cancelled_by_id=actor_id,
                cancelled_at=now_utc(),
                cancel_comment=comment,
            )
            if balance is not None:
                ledger.release_usage(db, balance, released_days, actor_id, request_id=leave_request.id)
            record(
                db,
                entity_type=ENTITY_TYPE,
                entity_id=leave_request.id,
                actor_id=actor_id,
                action="CANCEL_APPROVED" if was_approved else "CANCEL",
                before=before,
                after=request_snapshot(leave_request),
                comment=comment,
            )
        return leave_request

    leave_request = run_with_retry(_attempt, entity_id=request_id)
    notification_service.dispatch("CANCELLED", leave_request, actor_id=actor_id)
    return leave_request
