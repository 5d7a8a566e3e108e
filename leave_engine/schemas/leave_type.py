"""
Leave type schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from leave_engine.models.leave import AccrualKind


class LeaveTypeCreate(BaseModel):
    """Schema for creating a leave type"""
    name: str = Field(..., min_length=1, max_length=100, description="Unique leave type name")
    description: Optional[str] = Field(None, description="Description")
    default_allocation_days: Decimal = Field(Decimal("0"), ge=0, description="Yearly entitlement")
    max_carryover_days: Decimal = Field(Decimal("0"), ge=0, description="Cap on days carried into the next year")
    accrual_kind: AccrualKind = Field(AccrualKind.ANNUAL, description="ANNUAL, MONTHLY or PER_PAY_PERIOD")
    accrual_rate: Decimal = Field(Decimal("0"), ge=0, description="Days per month / pay period")
    allows_negative_balance: bool = Field(False, description="Allow approval beyond the balance")


class LeaveTypeUpdate(BaseModel):
    """Schema for updating a leave type (rejected once approved requests reference it)"""
    description: Optional[str] = None
    default_allocation_days: Optional[Decimal] = Field(None, ge=0)
    max_carryover_days: Optional[Decimal] = Field(None, ge=0)
    accrual_kind: Optional[AccrualKind] = None
    accrual_rate: Optional[Decimal] = Field(None, ge=0)
    allows_negative_balance: Optional[bool] = None


class LeaveTypeOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    default_allocation_days: float
    max_carryover_days: float
    accrual_kind: AccrualKind
    accrual_rate: float
    allows_negative_balance: bool
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
