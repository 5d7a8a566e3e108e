"""
Balance ledger - one row per (employee, leave type, year).

- available = allocated + carried_forward - used
- used_days changes only through commit_usage (approval) and release_usage
  (cancellation of an approved request), both under a row lock plus a
  version compare-and-swap.
- Pending requests are never stored on the balance: their days are summed on
  demand (soft reservation), so rejecting or cancelling a pending request has
  nothing to release.
- Rows are created by initialize_balance (onboarding, new year, or first use)
  and carry forward the prior year's unused days up to the type's cap.
"""
import logging
from datetime import date
from decimal import Decimal, ROUND_FLOOR
from typing import Dict, List, Optional, Any

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leave_engine.core.config import settings
from leave_engine.core.exceptions import LockContention, NotFound
from leave_engine.models.employee import Employee
from leave_engine.models.leave import (
    AccrualKind,
    LeaveBalance,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
)
from leave_engine.services.audit_service import record
from leave_engine.services.transaction import atomic, run_with_retry

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ENTITY_TYPE = "leave_balance"


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_down_to_half(value: Decimal) -> Decimal:
    """Round down to the nearest 0.5 day"""
    return (value * 2).to_integral_value(rounding=ROUND_FLOOR) / 2


def _eligible_months(year: int, hire_date: Optional[date]) -> int:
    """Months of the year the employee is employed for, counting the hire month"""
    if hire_date is None or hire_date.year < year:
        return 12
    if hire_date.year > year:
        return 0
    return 12 - hire_date.month + 1


def _eligible_pay_periods(year: int, hire_date: Optional[date], periods_per_year: int) -> int:
    if hire_date is None or hire_date.year < year:
        return periods_per_year
    if hire_date.year > year:
        return 0
    year_days = (date(year, 12, 31) - date(year, 1, 1)).days + 1
    remaining_days = (date(year, 12, 31) - hire_date).days + 1
    return (periods_per_year * remaining_days) // year_days


def compute_allocation(leave_type: LeaveType, year: int, hire_date: Optional[date]) -> Decimal:
    """
    Entitlement for a full year under the type's accrual rule.

    ANNUAL grants default_allocation_days, pro-rated by month for employees
    hired during the year. MONTHLY and PER_PAY_PERIOD grant rate per eligible
    month / pay period, capped at default_allocation_days when that is set.
    """
    default_days = _dec(leave_type.default_allocation_days)
    rate = _dec(leave_type.accrual_rate)
    months = _eligible_months(year, hire_date)

    if leave_type.accrual_kind == AccrualKind.MONTHLY:
        amount = rate * months
    elif leave_type.accrual_kind == AccrualKind.PER_PAY_PERIOD:
        amount = rate * _eligible_pay_periods(year, hire_date, settings.PAY_PERIODS_PER_YEAR)
    else:
        amount = default_days * months / 12

    if leave_type.accrual_kind != AccrualKind.ANNUAL and default_days > 0:
        amount = min(amount, default_days)
    return round_down_to_half(amount)


def balance_snapshot(balance: LeaveBalance) -> Dict[str, Any]:
    return {
        "employee_id": balance.employee_id,
        "leave_type_id": balance.leave_type_id,
        "year": balance.year,
        "allocated_days": _dec(balance.allocated_days),
        "carried_forward_days": _dec(balance.carried_forward_days),
        "used_days": _dec(balance.used_days),
        "version": balance.version,
    }


def get_balance(
    db: Session,
    employee_id: int,
    leave_type_id: int,
    year: int,
) -> Optional[LeaveBalance]:
    return (
        db.query(LeaveBalance)
        .filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
        .first()
    )


def list_balances(db: Session, employee_id: int, year: int) -> List[LeaveBalance]:
    return (
        db.query(LeaveBalance)
        .filter(LeaveBalance.employee_id == employee_id, LeaveBalance.year == year)
        .order_by(LeaveBalance.leave_type_id)
        .all()
    )


def lock_balance(
    db: Session,
    employee_id: int,
    leave_type_id: int,
    year: int,
) -> Optional[LeaveBalance]:
    """
    Read the balance row under an exclusive row lock (SELECT ... FOR UPDATE).

    The lock is held until the caller's transaction ends. populate_existing
    makes sure used_days and version come from this read, not the identity map.
    """
    return (
        db.query(LeaveBalance)
        .filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
        .populate_existing()
        .with_for_update(nowait=settings.BALANCE_LOCK_NOWAIT)
        .first()
    )


def _year_bounds(year: int):
    return date(year, 1, 1), date(year, 12, 31)


def pending_reserved_days(
    db: Session,
    employee_id: int,
    leave_type_id: int,
    year: int,
    exclude_request_id: Optional[int] = None,
) -> Decimal:
    """Sum of days held by the employee's PENDING requests of this type/year"""
    year_start, year_end = _year_bounds(year)
    query = db.query(func.coalesce(func.sum(LeaveRequest.days_count), 0)).filter(
        LeaveRequest.requester_id == employee_id,
        LeaveRequest.leave_type_id == leave_type_id,
        LeaveRequest.status == LeaveStatus.PENDING,
        LeaveRequest.start_date >= year_start,
        LeaveRequest.start_date <= year_end,
    )
    if exclude_request_id is not None:
        query = query.filter(LeaveRequest.id != exclude_request_id)
    return _dec(query.scalar())


def approved_days_total(
    db: Session,
    employee_id: int,
    leave_type_id: int,
    year: int,
) -> Decimal:
    year_start, year_end = _year_bounds(year)
    total = db.query(func.coalesce(func.sum(LeaveRequest.days_count), 0)).filter(
        LeaveRequest.requester_id == employee_id,
        LeaveRequest.leave_type_id == leave_type_id,
        LeaveRequest.status == LeaveStatus.APPROVED,
        LeaveRequest.start_date >= year_start,
        LeaveRequest.start_date <= year_end,
    ).scalar()
    return _dec(total)


def available_balance(
    db: Session,
    balance: LeaveBalance,
    include_pending: bool = True,
    exclude_request_id: Optional[int] = None,
) -> Decimal:
    """
    Days still available on the balance.

    With include_pending the employee's other PENDING requests are subtracted
    (submission-time soft check); without it only committed usage counts
    (approval-time hard check).
    """
    available = _dec(balance.allocated_days) + _dec(balance.carried_forward_days) - _dec(balance.used_days)
    if include_pending:
        available -= pending_reserved_days(
            db,
            balance.employee_id,
            balance.leave_type_id,
            balance.year,
            exclude_request_id=exclude_request_id,
        )
    return available


def _apply_usage_delta(
    db: Session,
    balance: LeaveBalance,
    delta: Decimal,
    action: str,
    actor_id: int,
    request_id: Optional[int],
) -> LeaveBalance:
    before = balance_snapshot(balance)
    new_used = _dec(balance.used_days) + delta
    result = db.execute(
        update(LeaveBalance)
        .where(LeaveBalance.id == balance.id, LeaveBalance.version == balance.version)
        .values(used_days=new_used, version=LeaveBalance.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise LockContention(
            "The balance changed while it was being updated, retry the request",
            entity_id=request_id,
        )
    db.refresh(balance)
    record(
        db,
        entity_type=ENTITY_TYPE,
        entity_id=balance.id,
        actor_id=actor_id,
        action=action,
        before=before,
        after=balance_snapshot(balance),
        comment=f"leave_request {request_id}: {delta:+} days" if request_id is not None else None,
    )
    logger.info(
        "ledger %s: balance_id=%s request_id=%s delta=%s used %s -> %s",
        action, balance.id, request_id, delta, before["used_days"], balance.used_days,
    )
    return balance


def commit_usage(
    db: Session,
    balance: LeaveBalance,
    days: Decimal,
    actor_id: int,
    request_id: Optional[int] = None,
) -> LeaveBalance:
    """used_days += days. Caller holds the row lock and owns the transaction."""
    return _apply_usage_delta(db, balance, _dec(days), "COMMIT_USAGE", actor_id, request_id)


def release_usage(
    db: Session,
    balance: LeaveBalance,
    days: Decimal,
    actor_id: int,
    request_id: Optional[int] = None,
) -> LeaveBalance:
    """used_days -= days. Caller holds the row lock and owns the transaction."""
    return _apply_usage_delta(db, balance, -_dec(days), "RELEASE_USAGE", actor_id, request_id)


def _carry_forward_days(db: Session, employee_id: int, leave_type: LeaveType, year: int) -> Decimal:
    cap = _dec(leave_type.max_carryover_days)
    if cap <= 0:
        return ZERO
    prior = lock_balance(db, employee_id, leave_type.id, year - 1)
    if prior is None:
        return ZERO
    unused = max(ZERO, prior.remaining_days)
    return min(unused, cap)


def initialize_balance(
    db: Session,
    employee: Employee,
    leave_type: LeaveType,
    year: int,
    actor_id: int,
    entitled: bool = True,
) -> LeaveBalance:
    """
    Create the (employee, type, year) balance row if it does not exist yet.

    Idempotent: an existing row is returned untouched. Runs inside the
    caller's transaction; a concurrent insert of the same key surfaces as
    LockContention so the caller retries and finds the row. With
    entitled=False the row starts at zero allocation and no carry-forward.
    """
    existing = get_balance(db, employee.id, leave_type.id, year)
    if existing is not None:
        return existing

    if entitled:
        carried = _carry_forward_days(db, employee.id, leave_type, year)
        allocated = compute_allocation(leave_type, year, employee.hire_date)
    else:
        carried = allocated = ZERO
    balance = LeaveBalance(
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        year=year,
        allocated_days=allocated,
        carried_forward_days=carried,
        used_days=ZERO,
        version=1,
    )
    try:
        db.add(balance)
        db.flush()
    except IntegrityError as exc:
        raise LockContention(
            "The balance is being initialized by another operation, retry the request",
        ) from exc

    record(
        db,
        entity_type=ENTITY_TYPE,
        entity_id=balance.id,
        actor_id=actor_id,
        action="INITIALIZE",
        before=None,
        after=balance_snapshot(balance),
    )
    logger.info(
        "balance initialized: employee_id=%s leave_type_id=%s year=%s allocated=%s carried=%s",
        employee.id, leave_type.id, year, allocated, carried,
    )
    return balance


def ensure_balance(
    db: Session,
    employee: Employee,
    leave_type: LeaveType,
    year: int,
    actor_id: int,
) -> Optional[LeaveBalance]:
    """
    Return the balance row, creating it on first use when
    AUTO_INITIALIZE_BALANCES is on. With it off a missing row comes back as
    None and counts as zero entitlement.
    """
    balance = get_balance(db, employee.id, leave_type.id, year)
    if balance is not None:
        return balance
    if not settings.AUTO_INITIALIZE_BALANCES:
        return None
    return initialize_balance(db, employee, leave_type, year, actor_id)


def initialize_employee_year(
    db: Session,
    employee: Employee,
    year: int,
    actor_id: int,
) -> int:
    """Initialize every active leave type for one employee in one transaction. Returns rows created."""
    leave_types = db.query(LeaveType).filter(LeaveType.is_active == True).order_by(LeaveType.id).all()  # noqa: E712

    def _attempt() -> int:
        created = 0
        with atomic(db, entity_id=employee.id):
            for leave_type in leave_types:
                if get_balance(db, employee.id, leave_type.id, year) is None:
                    initialize_balance(db, employee, leave_type, year, actor_id)
                    created += 1
        return created

    return run_with_retry(_attempt, entity_id=employee.id)


def initialize_year(db: Session, year: int, actor_id: int) -> Dict[str, Any]:
    """
    Batch initialization for every active employee and active leave type.

    Used at onboarding time and for the new-year rollover. Each employee is
    its own transaction, so one failure does not hold back the others.
    """
    employees = db.query(Employee).filter(Employee.active == True).order_by(Employee.id).all()  # noqa: E712
    employee_ids = [e.id for e in employees]

    created_total = 0
    failed: List[int] = []
    for employee_id in employee_ids:
        employee = db.query(Employee).filter(Employee.id == employee_id).first()
        try:
            created_total += initialize_employee_year(db, employee, year, actor_id)
        except LockContention:
            logger.warning("balance initialization skipped after retries: employee_id=%s year=%s", employee_id, year)
            failed.append(employee_id)

    logger.info(
        "year initialization done: year=%s employees=%s balances_created=%s failed=%s",
        year, len(employee_ids), created_total, len(failed),
    )
    return {
        "year": year,
        "employees_processed": len(employee_ids),
        "balances_created": created_total,
        "failed_employee_ids": failed,
    }


def reconcile_balance(
    db: Session,
    employee_id: int,
    leave_type_id: int,
    year: int,
) -> Dict[str, Any]:
    """
    Check the ledger invariant: used_days == sum of APPROVED days_count.
    """
    balance = get_balance(db, employee_id, leave_type_id, year)
    if balance is None:
        raise NotFound(
            f"No balance for employee {employee_id}, leave type {leave_type_id}, year {year}",
            entity_id=employee_id,
        )
    approved = approved_days_total(db, employee_id, leave_type_id, year)
    used = _dec(balance.used_days)
    consistent = used == approved
    if not consistent:
        logger.error(
            "ledger mismatch: balance_id=%s used_days=%s approved_days=%s", balance.id, used, approved
        )
    return {
        "balance_id": balance.id,
        "employee_id": employee_id,
        "leave_type_id": leave_type_id,
        "year": year,
        "used_days": used,
        "approved_days": approved,
        "consistent": consistent,
    }
