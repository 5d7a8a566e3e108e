"""
Balance ledger endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leave_engine.core.deps import get_db, get_current_user, require_roles
from leave_engine.core.exceptions import NotFound, Unauthorized
from leave_engine.models.employee import Employee, Role
from leave_engine.schemas.balance import (
    BalanceOut,
    BalanceListResponse,
    InitializeRequest,
    InitializeOut,
    ReconcileOut,
)
from leave_engine.services import ledger_service as ledger

router = APIRouter()


def _balance_list(db: Session, employee_id: int, year: int) -> BalanceListResponse:
    items = []
    for balance in ledger.list_balances(db, employee_id, year):
        pending = ledger.pending_reserved_days(db, employee_id, balance.leave_type_id, year)
        remaining = ledger.available_balance(db, balance, include_pending=False)
        items.append(
            BalanceOut(
                leave_type_id=balance.leave_type_id,
                leave_type_name=balance.leave_type.name,
                year=balance.year,
                allocated_days=balance.allocated_days,
                carried_forward_days=balance.carried_forward_days,
                used_days=balance.used_days,
                pending_days=pending,
                remaining_days=remaining,
                available_days=remaining - pending,
            )
        )
    return BalanceListResponse(employee_id=employee_id, year=year, items=items)


@router.get("/me", response_model=BalanceListResponse)
def my_balances_endpoint(
    year: int = Query(..., description="Calendar year (e.g. 2026)"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Current user's balances for the year, with days held by pending requests"""
    return _balance_list(db, current_user.id, year)


@router.post("/initialize", response_model=InitializeOut)
def initialize_year_endpoint(
    payload: InitializeRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """
    Create missing balances for every active employee and leave type

    Idempotent; existing rows are left untouched. Carry-forward is taken from
    the prior year's remaining days, capped per leave type.
    """
    return ledger.initialize_year(db, payload.year, actor_id=current_user.id)


@router.get("/{employee_id}", response_model=BalanceListResponse)
def employee_balances_endpoint(
    employee_id: int,
    year: int = Query(..., description="Calendar year (e.g. 2026)"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Balances of one employee: visible to the employee, their manager, HR and ADMIN
    """
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise NotFound(f"Employee with id {employee_id} not found", entity_id=employee_id)
    if not (
        current_user.id == employee_id
        or current_user.is_privileged
        or employee.manager_id == current_user.id
    ):
        raise Unauthorized("You are not allowed to view this employee's balances", entity_id=employee_id)
    return _balance_list(db, employee_id, year)


@router.get("/{employee_id}/reconcile", response_model=ReconcileOut)
def reconcile_endpoint(
    employee_id: int,
    leave_type_id: int = Query(...),
    year: int = Query(...),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """Compare used_days with the sum of approved requests for one balance"""
    result = ledger.reconcile_balance(db, employee_id, leave_type_id, year)
    if not result["consistent"]:
        result["note"] = "used_days does not match approved requests"
    return result
