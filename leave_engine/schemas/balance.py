"""
Balance ledger schemas
"""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer


class BalanceOut(BaseModel):
    """
    One (employee, leave type, year) balance.

    remaining = allocated + carried_forward - used;
    available additionally subtracts days held by pending requests.
    """
    leave_type_id: int
    leave_type_name: str
    year: int
    allocated_days: Decimal
    carried_forward_days: Decimal
    used_days: Decimal
    pending_days: Decimal
    remaining_days: Decimal
    available_days: Decimal

    @field_serializer(
        "allocated_days", "carried_forward_days", "used_days", "pending_days",
        "remaining_days", "available_days",
        when_used="always",
    )
    @classmethod
    def _ser_days(cls, value: Decimal) -> float:
        return float(value)


class BalanceListResponse(BaseModel):
    employee_id: int
    year: int
    items: List[BalanceOut]


class InitializeRequest(BaseModel):
    """Batch initialization of a year's balances"""
    year: int = Field(..., ge=1900, le=9999, description="Calendar year to initialize")


class InitializeOut(BaseModel):
    year: int
    employees_processed: int
    balances_created: int
    failed_employee_ids: List[int]


class ReconcileOut(BaseModel):
    balance_id: int
    employee_id: int
    leave_type_id: int
    year: int
    used_days: Decimal
    approved_days: Decimal
    consistent: bool
    note: Optional[str] = None

    @field_serializer("used_days", "approved_days", when_used="always")
    @classmethod
    def _ser_days(cls, value: Decimal) -> float:
        return float(value)
