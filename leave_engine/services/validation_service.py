"""
Overlap and eligibility checks run at submission time.

Nothing here mutates a balance. The balance check is a soft check: it
subtracts the requester's other pending requests, but two racing submissions
can still both pass. The approval step settles that with a hard check under
the row lock.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from leave_engine.core.exceptions import (
    InsufficientBalance,
    InvalidRange,
    NotFound,
    OverlappingRequest,
    ValidationFailed,
)
from leave_engine.models.employee import Employee
from leave_engine.models.leave import ACTIVE_LEAVE_STATUSES, LeaveRequest, LeaveType
from leave_engine.services import ledger_service as ledger
from leave_engine.services.calendar_service import resolve_days

logger = logging.getLogger(__name__)


def validate_leave_year(start_date: date, end_date: date) -> None:
    """
    A request is charged to exactly one balance row, so it must fall within
    one calendar year.
    """
    if start_date.year != end_date.year:
        raise InvalidRange(
            f"Leave cannot span across years. Start year: {start_date.year}, end year: {end_date.year}"
        )


def find_overlapping_request(
    db: Session,
    requester_id: int,
    start_date: date,
    end_date: date,
    exclude_request_id: Optional[int] = None,
) -> Optional[LeaveRequest]:
    """
    First PENDING or APPROVED request of the requester whose inclusive date
    range intersects [start_date, end_date].
    """
    # existing.end >= new.start AND existing.start <= new.end
    query = db.query(LeaveRequest).filter(
        LeaveRequest.requester_id == requester_id,
        LeaveRequest.status.in_(ACTIVE_LEAVE_STATUSES),
        LeaveRequest.end_date >= start_date,
        LeaveRequest.start_date <= end_date,
    )
    if exclude_request_id is not None:
        query = query.filter(LeaveRequest.id != exclude_request_id)
    return query.order_by(LeaveRequest.start_date).first()


def get_active_leave_type(db: Session, leave_type_id: int) -> LeaveType:
    leave_type = db.query(LeaveType).filter(LeaveType.id == leave_type_id).first()
    if not leave_type:
        raise NotFound(f"Leave type with id {leave_type_id} not found", entity_id=leave_type_id)
    if not leave_type.is_active:
        raise ValidationFailed(f"Leave type {leave_type.name} is not active", entity_id=leave_type_id)
    return leave_type


def validate_submission(
    db: Session,
    requester: Employee,
    leave_type: LeaveType,
    start_date: date,
    end_date: date,
    start_half_day: bool = False,
    end_half_day: bool = False,
) -> Decimal:
    """
    Validate a new request and return its billable day count.

    Order of checks:
    1. Day count from the calendar (InvalidRange for reversed, cross-year or
       zero-working-day ranges)
    2. Overlap with the requester's own pending/approved requests
    3. Soft balance check against allocated + carried - used - pending

    Must run inside the same transaction that inserts the request.
    """
    if end_date < start_date:
        raise InvalidRange(f"end_date {end_date} is before start_date {start_date}")
    validate_leave_year(start_date, end_date)

    days_count = resolve_days(db, start_date, end_date, start_half_day, end_half_day)
    if days_count <= 0:
        raise InvalidRange(
            "Leave request must include at least one working day (weekends and holidays are excluded)"
        )

    overlapping = find_overlapping_request(db, requester.id, start_date, end_date)
    if overlapping is not None:
        raise OverlappingRequest(
            f"Leave request overlaps with existing leave from {overlapping.start_date} to {overlapping.end_date}",
            entity_id=overlapping.id,
            current_status=overlapping.status.value,
        )

    year = start_date.year
    balance = ledger.ensure_balance(db, requester, leave_type, year, actor_id=requester.id)
    if balance is not None:
        available = ledger.available_balance(db, balance, include_pending=True)
    else:
        available = -ledger.pending_reserved_days(db, requester.id, leave_type.id, year)
    if days_count > available and not leave_type.allows_negative_balance:
        logger.info(
            "submission rejected for balance: requester_id=%s leave_type_id=%s requested=%s available=%s",
            requester.id, leave_type.id, days_count, available,
        )
        raise InsufficientBalance(
            f"Insufficient {leave_type.name} balance: requested {days_count}, available {available}",
            stage=InsufficientBalance.SUBMISSION,
            requested=days_count,
            available=available,
        )
    return days_count
